#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.vendor import VendorModel
from marketplace.data.models.variant import VariantModel
from marketplace.data.models.price import PriceSetModel, PriceTierModel
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.order_event import OrderEventModel
from marketplace.data.models.rider_location import RiderLocationModel
from marketplace.data.models.counter import CounterModel

__all__ = [
    "VendorModel",
    "VariantModel",
    "PriceSetModel",
    "PriceTierModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderEventModel",
    "RiderLocationModel",
    "CounterModel",
]
