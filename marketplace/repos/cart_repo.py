# marketplace/repos/cart_repo.py
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def find_cart(self, owner_key: str, vendor_id: str) -> CartModel | None:
        """Koszyk dla pary (wlasciciel, sklep) - takze przeterminowany, filtruje serwis."""
        return (
            self.db.query(CartModel)
            .filter(CartModel.owner_key == owner_key, CartModel.vendor_id == vendor_id)
            .one_or_none()
        )

    def create_cart(self, cart: CartModel) -> CartModel:
        # flush zeby unique constraint zadzialal od razu
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, cart_id: int) -> List[CartItemModel]:
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.id)
            .all()
        )

    def get_cart_item(self, cart_id: int, variant_id: str) -> CartItemModel | None:
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.cart_id == cart_id, CartItemModel.variant_id == variant_id)
            .one_or_none()
        )

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_cart(self, cart: CartModel) -> int:
        """Usuwa koszyk razem z pozycjami, zwraca liczbe usunietych pozycji."""
        items = self.get_cart_items(cart.id)
        for item in items:
            self.db.delete(item)
        self.db.flush()

        self.db.delete(cart)
        self.db.flush()
        return len(items)

    def find_expired(self, now: datetime, limit: int) -> List[CartModel]:
        return (
            self.db.query(CartModel)
            .filter(CartModel.expires_at < now)
            .order_by(CartModel.expires_at, CartModel.id)
            .limit(limit)
            .all()
        )

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
