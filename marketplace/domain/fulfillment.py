# marketplace/domain/fulfillment.py
"""
Maszyna stanow realizacji zamowienia.

pending -> confirmed -> preparing -> ready_for_pickup -> out_for_delivery -> delivered -> completed
cancelled / refunded osiagalne z niekoncowych stanow.

Kazda akcja to jeden wpis w TRANSITIONS, a authorize() jest jedyna bramka
sprawdzajaca role, status, typ realizacji i przypisanego kuriera.
Etapy kuriera (odbior ze sklepu) sa zdarzeniami bez zmiany statusu.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Protocol

from marketplace.domain.errors import IllegalTransition


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class FulfillmentType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"
    SELF_DELIVERY = "self_delivery"


class FulfillmentStatus(str, Enum):
    NOT_FULFILLED = "not_fulfilled"
    FULFILLED = "fulfilled"
    SHIPPED = "shipped"
    RETURNED = "returned"


class PaymentStatus(str, Enum):
    AWAITING = "awaiting"
    CAPTURED = "captured"
    REFUNDED = "refunded"
    CANCELED = "canceled"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    MOBILE_MONEY = "mobile_money"
    CARD = "card"
    WALLET = "wallet"


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    RIDER = "rider"
    SYSTEM = "system"


class Action(str, Enum):
    CONFIRM = "confirm"
    START_PREPARING = "start_preparing"
    MARK_READY = "mark_ready"
    RIDER_ACCEPT = "rider_accept"
    VENDOR_ASSIGN = "vendor_assign"
    CONFIRM_PICKUP = "confirm_pickup"
    DELIVER = "deliver"
    RIDER_UNASSIGN = "rider_unassign"
    MARK_COLLECTED = "mark_collected"
    COMPLETE = "complete"
    CANCEL = "cancel"
    REFUND = "refund"


class RiderRule(Enum):
    ANY = "any"
    UNASSIGNED = "unassigned"
    ASSIGNED_TO_ACTOR = "assigned_to_actor"


class RiderEffect(Enum):
    KEEP = "keep"
    SET = "set"
    CLEAR = "clear"


S = OrderStatus

TERMINAL: FrozenSet[OrderStatus] = frozenset({S.CANCELLED, S.REFUNDED})
NON_TERMINAL: FrozenSet[OrderStatus] = frozenset(s for s in OrderStatus if s not in TERMINAL)
BEFORE_DELIVERY: FrozenSet[OrderStatus] = frozenset(
    {S.PENDING, S.CONFIRMED, S.PREPARING, S.READY_FOR_PICKUP, S.OUT_FOR_DELIVERY}
)


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole


@dataclass(frozen=True)
class Transition:
    action: Action
    sources: FrozenSet[OrderStatus]
    target: Optional[OrderStatus]
    roles: FrozenSet[ActorRole]
    event_type: str
    rider_rule: RiderRule = RiderRule.ANY
    rider_effect: RiderEffect = RiderEffect.KEEP
    fulfillment_types: Optional[FrozenSet[FulfillmentType]] = None
    fulfillment_status: Optional[FulfillmentStatus] = None
    payment_status: Optional[PaymentStatus] = None
    reason_required: bool = False
    # zawezone stany zrodlowe dla konkretnej roli
    role_sources: Mapping[ActorRole, FrozenSet[OrderStatus]] = field(default_factory=dict)

    def sources_for(self, role: ActorRole) -> FrozenSet[OrderStatus]:
        return self.role_sources.get(role, self.sources)


def _t(action, sources, target, roles, event_type, **kwargs) -> Transition:
    return Transition(
        action=action,
        sources=frozenset(sources),
        target=target,
        roles=frozenset(roles),
        event_type=event_type,
        **kwargs,
    )


VENDOR = ActorRole.VENDOR
RIDER = ActorRole.RIDER
CUSTOMER = ActorRole.CUSTOMER
SYSTEM = ActorRole.SYSTEM

TRANSITIONS: Dict[Action, Transition] = {
    t.action: t
    for t in [
        _t(Action.CONFIRM, {S.PENDING}, S.CONFIRMED, {VENDOR}, "status_change"),
        _t(Action.START_PREPARING, {S.CONFIRMED}, S.PREPARING, {VENDOR}, "status_change"),
        _t(Action.MARK_READY, {S.PREPARING}, S.READY_FOR_PICKUP, {VENDOR}, "status_change"),
        _t(
            Action.RIDER_ACCEPT,
            {S.READY_FOR_PICKUP},
            S.OUT_FOR_DELIVERY,
            {RIDER},
            "rider_accepted",
            rider_rule=RiderRule.UNASSIGNED,
            rider_effect=RiderEffect.SET,
            fulfillment_types=frozenset({FulfillmentType.DELIVERY}),
        ),
        _t(
            Action.VENDOR_ASSIGN,
            {S.PREPARING, S.READY_FOR_PICKUP},
            S.OUT_FOR_DELIVERY,
            {VENDOR},
            "rider_assigned",
            rider_rule=RiderRule.UNASSIGNED,
            rider_effect=RiderEffect.SET,
            fulfillment_types=frozenset({FulfillmentType.DELIVERY, FulfillmentType.SELF_DELIVERY}),
        ),
        _t(
            Action.CONFIRM_PICKUP,
            {S.OUT_FOR_DELIVERY},
            None,
            {RIDER},
            "picked_up",
            rider_rule=RiderRule.ASSIGNED_TO_ACTOR,
        ),
        _t(
            Action.DELIVER,
            {S.OUT_FOR_DELIVERY},
            S.DELIVERED,
            {RIDER},
            "delivered",
            rider_rule=RiderRule.ASSIGNED_TO_ACTOR,
            fulfillment_status=FulfillmentStatus.FULFILLED,
            # zakladamy platnosc przy odbiorze
            payment_status=PaymentStatus.CAPTURED,
        ),
        _t(
            Action.RIDER_UNASSIGN,
            BEFORE_DELIVERY,
            S.READY_FOR_PICKUP,
            {RIDER},
            "rider_unassigned",
            rider_rule=RiderRule.ASSIGNED_TO_ACTOR,
            rider_effect=RiderEffect.CLEAR,
            reason_required=True,
        ),
        _t(
            Action.MARK_COLLECTED,
            {S.READY_FOR_PICKUP},
            S.DELIVERED,
            {VENDOR},
            "status_change",
            fulfillment_types=frozenset({FulfillmentType.PICKUP}),
            fulfillment_status=FulfillmentStatus.FULFILLED,
            payment_status=PaymentStatus.CAPTURED,
        ),
        _t(Action.COMPLETE, {S.DELIVERED}, S.COMPLETED, {VENDOR, SYSTEM}, "status_change"),
        _t(
            Action.CANCEL,
            BEFORE_DELIVERY,
            S.CANCELLED,
            {CUSTOMER, VENDOR, SYSTEM},
            "status_change",
            rider_effect=RiderEffect.CLEAR,
            fulfillment_status=FulfillmentStatus.NOT_FULFILLED,
            reason_required=True,
            # klient moze anulowac tylko zanim zamowienie jest gotowe
            role_sources={CUSTOMER: frozenset({S.PENDING, S.CONFIRMED, S.PREPARING})},
        ),
        _t(
            Action.REFUND,
            NON_TERMINAL,
            S.REFUNDED,
            {VENDOR, SYSTEM},
            "status_change",
            payment_status=PaymentStatus.REFUNDED,
        ),
    ]
}


class OrderState(Protocol):
    status: str
    fulfillment_type: str
    rider_id: Optional[str]
    customer_id: str
    vendor_id: str


def authorize(action: Action, order: OrderState, actor: Actor, reason: Optional[str] = None) -> Transition:
    """Jedyna bramka dla wszystkich akcji. Zwraca przejscie albo rzuca IllegalTransition."""
    transition = TRANSITIONS[action]
    status = OrderStatus(order.status)

    if actor.role not in transition.roles:
        raise IllegalTransition(f"A {actor.role.value} cannot perform {action.value}")

    if actor.role is ActorRole.CUSTOMER and order.customer_id != actor.id:
        raise IllegalTransition("You can only act on your own orders")

    if actor.role is ActorRole.VENDOR and order.vendor_id != actor.id:
        raise IllegalTransition("This order belongs to a different vendor")

    if status not in transition.sources_for(actor.role):
        raise IllegalTransition(f"Cannot {action.value} order with status: {status.value}")

    if transition.fulfillment_types is not None:
        if FulfillmentType(order.fulfillment_type) not in transition.fulfillment_types:
            raise IllegalTransition(
                f"Cannot {action.value} a {order.fulfillment_type} order"
            )

    if transition.rider_rule is RiderRule.UNASSIGNED and order.rider_id:
        raise IllegalTransition("This order has already been assigned to a rider")

    if transition.rider_rule is RiderRule.ASSIGNED_TO_ACTOR and order.rider_id != actor.id:
        raise IllegalTransition("You are not assigned to this order")

    if transition.reason_required and not (reason and reason.strip()):
        raise ValueError(f"A reason is required to {action.value}")

    return transition


def available_actions(order: OrderState, actor: Actor) -> List[Action]:
    allowed = []
    for action, transition in TRANSITIONS.items():
        try:
            authorize(action, order, actor, reason="-" if transition.reason_required else None)
        except IllegalTransition:
            continue
        allowed.append(action)
    return allowed
