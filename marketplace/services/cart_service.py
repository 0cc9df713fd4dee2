# marketplace/services/cart_service.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.errors import Conflict, CrossVendor, Expired, NotFound, Unavailable
from marketplace.domain.pricing import CurrencyPolicy
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.catalog_repo import CatalogRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.pricing_service import PriceResolver
from marketplace.utils.clock import Clock, utcnow
from marketplace.utils.settings import CART_TTL_SECONDS, CART_REAPER_BATCH_SIZE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CheckoutLine:
    variant_id: str
    title: str
    quantity: int
    unit_price: int
    subtotal: int
    is_on_sale: bool = False


@dataclass
class CheckoutReport:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    lines: List[CheckoutLine] = field(default_factory=list)
    total: int = 0


@dataclass
class ReorderResult:
    cart: CartModel
    added_count: int
    unavailable_items: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.unavailable_items:
            return f"Some items are no longer available: {', '.join(self.unavailable_items)}"
        return "All items added to cart"


def owner_key_for(customer_id: str | None = None, session_id: str | None = None) -> str:
    # dokladnie jedno z dwoch
    if bool(customer_id) == bool(session_id):
        raise ValueError("Exactly one of customer_id or session_id is required")
    if customer_id:
        return f"customer:{customer_id}"
    return f"session:{session_id}"


class CartService:
    """
    Koszyk per (klient albo sesja goscia, sklep).
    commands (get_or_create, add, set, remove, clear, merge, reorder) modyfikuja stan i koncza sie jednym commitem
    query (find_active, get_view, validate_for_checkout) tylko odczyt
    """

    def __init__(
        self,
        db: Session,
        resolver: PriceResolver | None = None,
        currency_policy: CurrencyPolicy | None = None,
        clock: Clock = utcnow,
        ttl_seconds: int = CART_TTL_SECONDS,
    ):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db)
        self.currency_policy = currency_policy or CurrencyPolicy()
        self.resolver = resolver or PriceResolver(db, self.currency_policy)
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)

    def _is_live(self, cart: CartModel, now: datetime) -> bool:
        return now <= cart.expires_at

    def _touch(self, cart: CartModel, now: datetime) -> None:
        # sliding window - kazda zmiana przedluza koszyk
        cart.expires_at = now + self.ttl
        cart.updated_at = now

    def _check_owner(self, cart: CartModel, owner_key: str | None) -> None:
        if owner_key is not None and cart.owner_key != owner_key:
            raise PermissionError("You do not have access to this cart")

    def get_live_cart(self, cart_id: int, owner_key: str | None = None) -> CartModel:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise NotFound("Cart not found")
        self._check_owner(cart, owner_key)
        if not self._is_live(cart, self.clock()):
            raise Expired("Cart has expired")
        return cart

    #query - odczyt
    def find_active(
        self,
        vendor_id: str,
        customer_id: str | None = None,
        session_id: str | None = None,
    ) -> CartModel | None:
        cart = self.repo.find_cart(owner_key_for(customer_id, session_id), vendor_id)
        if cart is None or not self._is_live(cart, self.clock()):
            return None
        return cart

    def get_view(self, cart_id: int, owner_key: str | None = None) -> Dict[str, Any]:
        cart = self.get_live_cart(cart_id, owner_key)

        items = []
        for line in self.repo.get_cart_items(cart.id):
            variant = self.catalog.get_variant(line.variant_id)
            if variant is None:
                # wariant usuniety z katalogu - nie pokazujemy
                continue
            price = self.resolver.resolve_unit_price(variant.id, line.quantity, cart.currency_code)
            items.append(
                {
                    "variant_id": variant.id,
                    "title": variant.title,
                    "unit": variant.unit,
                    "quantity": line.quantity,
                    "unit_price": price.unit_amount,
                    "is_on_sale": price.is_on_sale,
                    "subtotal": price.unit_amount * line.quantity,
                    "is_available": variant.is_available,
                }
            )

        return {
            "cart_id": cart.id,
            "customer_id": cart.customer_id,
            "session_id": cart.session_id,
            "vendor_id": cart.vendor_id,
            "currency_code": cart.currency_code,
            "items": items,
            "subtotal": sum(i["subtotal"] for i in items),
            "item_count": sum(i["quantity"] for i in items),
            "expires_at": cart.expires_at,
        }

    #commands
    def get_or_create(
        self,
        vendor_id: str,
        customer_id: str | None = None,
        session_id: str | None = None,
        currency: str | None = None,
    ) -> CartModel:
        owner_key = owner_key_for(customer_id, session_id)
        now = self.clock()

        if self.catalog.get_vendor(vendor_id) is None:
            raise NotFound("Vendor not found")

        existing = self.repo.find_cart(owner_key, vendor_id)
        if existing is not None:
            if self._is_live(existing, now):
                self._touch(existing, now)
                self.repo.commit()
                return existing

            logger.info(f"Usuwam przeterminowany koszyk {existing.id} ({owner_key}, {vendor_id})")
            self.repo.delete_cart(existing)

        cart = CartModel(
            customer_id=customer_id,
            session_id=None if customer_id else session_id,
            owner_key=owner_key,
            vendor_id=vendor_id,
            currency_code=self.currency_policy.resolve(currency),
            expires_at=now + self.ttl,
            created_at=now,
            updated_at=now,
        )

        try:
            self.repo.create_cart(cart)
            self.repo.commit()
        except IntegrityError:
            # ktos rownolegle utworzyl koszyk dla tej pary - bierzemy jego
            self.repo.rollback()
            winner = self.repo.find_cart(owner_key, vendor_id)
            if winner is None:
                raise Conflict("Cart could not be created, try again")
            logger.info(f"Wyscig przy tworzeniu koszyka {owner_key}/{vendor_id}, uzywam {winner.id}")
            self._touch(winner, now)
            self.repo.commit()
            return winner

        logger.info(f"Utworzono koszyk {cart.id} dla {owner_key} w sklepie {vendor_id}")
        return cart

    def add_item(
        self,
        cart_id: int,
        variant_id: str,
        quantity: int = 1,
        owner_key: str | None = None,
    ) -> CartModel:
        """quantity to delta - ujemna zmniejsza, linia znika gdy wynik <= 0."""
        cart = self.get_live_cart(cart_id, owner_key)

        variant = self.catalog.get_variant(variant_id)
        if variant is None:
            raise NotFound("Product variant not found")
        if not variant.is_available:
            raise Unavailable(f"{variant.title} is not available")
        if variant.vendor_id != cart.vendor_id:
            raise CrossVendor("This product belongs to a different vendor's cart")

        line = self.repo.get_cart_item(cart.id, variant_id)
        if line is not None:
            new_quantity = line.quantity + quantity
            if new_quantity <= 0:
                logger.info(f"Usuwam {variant_id} z koszyka {cart.id}")
                self.repo.delete_cart_item(line)
            else:
                logger.info(
                    f"Produkt {variant_id} juz jest w koszyku {cart.id}, ilosc {line.quantity} -> {new_quantity}"
                )
                line.quantity = new_quantity
        elif quantity > 0:
            logger.info(f"Dodaje {variant_id} x{quantity} do koszyka {cart.id}")
            self.repo.add_cart_item(CartItemModel(cart_id=cart.id, variant_id=variant_id, quantity=quantity))
        else:
            return cart

        self._touch(cart, self.clock())
        self.repo.commit()
        return cart

    def set_quantity(
        self,
        cart_id: int,
        variant_id: str,
        quantity: int,
        owner_key: str | None = None,
    ) -> CartModel:
        if quantity <= 0:
            return self.remove_item(cart_id, variant_id, owner_key=owner_key)

        cart = self.get_live_cart(cart_id, owner_key)
        line = self.repo.get_cart_item(cart.id, variant_id)
        if line is None or quantity > line.quantity:
            # nowa pozycja albo wiecej sztuk - te same sprawdzenia katalogu co przy dodaniu
            delta = quantity - (line.quantity if line else 0)
            return self.add_item(cart.id, variant_id, delta, owner_key=owner_key)

        # zmniejszenie zawsze dozwolone, nawet gdy produkt zniknal z oferty
        logger.info(f"Ilosc {variant_id} w koszyku {cart.id}: {line.quantity} -> {quantity}")
        line.quantity = quantity
        self._touch(cart, self.clock())
        self.repo.commit()
        return cart

    def remove_item(self, cart_id: int, variant_id: str, owner_key: str | None = None) -> CartModel:
        cart = self.get_live_cart(cart_id, owner_key)

        line = self.repo.get_cart_item(cart.id, variant_id)
        if line is not None:
            self.repo.delete_cart_item(line)
            logger.info(f"Usunieto {variant_id} z koszyka {cart.id}")

        self._touch(cart, self.clock())
        self.repo.commit()
        return cart

    def clear(self, cart_id: int, owner_key: str | None = None) -> CartModel:
        cart = self.get_live_cart(cart_id, owner_key)

        for line in self.repo.get_cart_items(cart.id):
            self.repo.delete_cart_item(line)

        self._touch(cart, self.clock())
        self.repo.commit()
        logger.info(f"Wyczyszczono koszyk {cart.id}")
        return cart

    def delete(self, cart_id: int, owner_key: str | None = None) -> None:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise NotFound("Cart not found")
        self._check_owner(cart, owner_key)

        self.repo.delete_cart(cart)
        self.repo.commit()
        logger.info(f"Usunieto koszyk {cart_id}")

    def merge(self, guest_session_id: str, customer_id: str, vendor_id: str) -> CartModel | None:
        """
        Laczy koszyk goscia z koszykiem klienta po zalogowaniu.

        - brak koszyka goscia -> nic (None)
        - brak koszyka klienta -> koszyk goscia przechodzi na klienta
        - oba -> ilosci sumowane, koszyk goscia usuwany
        Wszystko w jednej transakcji, powtorzenie to no-op.
        """
        now = self.clock()
        guest_key = owner_key_for(session_id=guest_session_id)
        customer_key = owner_key_for(customer_id=customer_id)

        try:
            guest = self.repo.find_cart(guest_key, vendor_id)
            if guest is None:
                return None
            if not self._is_live(guest, now):
                self.repo.delete_cart(guest)
                self.repo.commit()
                return None

            customer_cart = self.repo.find_cart(customer_key, vendor_id)
            if customer_cart is not None and not self._is_live(customer_cart, now):
                self.repo.delete_cart(customer_cart)
                customer_cart = None

            if customer_cart is None:
                guest.customer_id = customer_id
                guest.session_id = None
                guest.owner_key = customer_key
                self._touch(guest, now)
                self.repo.commit()
                logger.info(f"Koszyk goscia {guest.id} przypisany do klienta {customer_id}")
                return guest

            for guest_line in self.repo.get_cart_items(guest.id):
                line = self.repo.get_cart_item(customer_cart.id, guest_line.variant_id)
                if line is not None:
                    line.quantity += guest_line.quantity
                else:
                    self.repo.add_cart_item(
                        CartItemModel(
                            cart_id=customer_cart.id,
                            variant_id=guest_line.variant_id,
                            quantity=guest_line.quantity,
                        )
                    )

            self.repo.delete_cart(guest)
            self._touch(customer_cart, now)
            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            raise Conflict("Cart changed during merge, try again")

        logger.info(f"Polaczono koszyk goscia {guest_session_id} z koszykiem {customer_cart.id} klienta {customer_id}")
        return customer_cart

    def reorder(self, order_id: int, customer_id: str) -> ReorderResult:
        """
        Wrzuca pozycje starego zamowienia do koszyka klienta w tym sklepie.
        Koszyk jest najpierw czyszczony. Produkty niedostepne sa pomijane i zwracane w wyniku.
        Ceny nie sa kopiowane, koszyk liczy je od nowa.
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.customer_id != customer_id:
            raise PermissionError("You do not have access to this order")

        order_items = self.orders.get_items(order.id)
        if not order_items:
            raise ValueError("Order has no items")

        cart = self.get_or_create(order.vendor_id, customer_id=customer_id, currency=order.currency_code)
        for line in self.repo.get_cart_items(cart.id):
            self.repo.delete_cart_item(line)

        result = ReorderResult(cart=cart, added_count=0)
        for item in order_items:
            variant = self.catalog.get_variant(item.variant_id)
            if variant is None or not variant.is_available or variant.vendor_id != cart.vendor_id:
                result.unavailable_items.append(item.title)
                continue

            line = self.repo.get_cart_item(cart.id, variant.id)
            if line is not None:
                line.quantity += item.quantity
            else:
                self.repo.add_cart_item(CartItemModel(cart_id=cart.id, variant_id=variant.id, quantity=item.quantity))
            result.added_count += 1

        self._touch(cart, self.clock())
        self.repo.commit()

        logger.info(
            f"Ponowione zamowienie {order.id} w koszyku {cart.id}: "
            f"{result.added_count} pozycji, niedostepne {len(result.unavailable_items)}"
        )
        return result

    def validate_for_checkout(self, cart_id: int, owner_key: str | None = None) -> CheckoutReport:
        """
        Ponowna walidacja kazdej pozycji z aktualnym katalogiem i cenami.
        Bledy blokuja zamowienie, ostrzezenia nie. Zbieramy wszystko naraz.
        """
        cart = self.get_live_cart(cart_id, owner_key)
        report = CheckoutReport(valid=True)

        for line in self.repo.get_cart_items(cart.id):
            variant = self.catalog.get_variant(line.variant_id)
            if variant is None:
                report.errors.append(f"Product {line.variant_id} no longer exists")
                continue
            if not variant.is_available:
                report.errors.append(f"{variant.title} is no longer available")
                continue
            if variant.stock_quantity <= 0:
                report.errors.append(f"{variant.title} is out of stock")
                continue

            price = self.resolver.resolve_unit_price(variant.id, line.quantity, cart.currency_code)
            if price.tier_id is None:
                report.errors.append(f"{variant.title} has no price")
                continue

            if line.quantity > variant.stock_quantity:
                report.warnings.append(
                    f"Only {variant.stock_quantity} of {variant.title} in stock, you requested {line.quantity}"
                )

            report.lines.append(
                CheckoutLine(
                    variant_id=variant.id,
                    title=variant.title,
                    quantity=line.quantity,
                    unit_price=price.unit_amount,
                    subtotal=price.unit_amount * line.quantity,
                    is_on_sale=price.is_on_sale,
                )
            )

        report.valid = not report.errors
        report.total = sum(line.subtotal for line in report.lines)
        return report

    def reap_expired(self, batch_size: int = CART_REAPER_BATCH_SIZE) -> Dict[str, int]:
        carts = self.repo.find_expired(self.clock(), batch_size)

        removed_items = 0
        for cart in carts:
            removed_items += self.repo.delete_cart(cart)
        self.repo.commit()

        if carts:
            logger.info(f"Usunieto {len(carts)} przeterminowanych koszykow ({removed_items} pozycji)")
        return {"carts": len(carts), "items": removed_items}
