from bookstore.models.user import User
from bookstore.models.category import Category
from bookstore.models.book import Book
from bookstore.models.review import Review
from bookstore.models.cart import CartItem
from bookstore.models.order_item import OrderItem
from bookstore.models.order import Order
from bookstore.models.wishlist import Wishlist

# add ALL models here
