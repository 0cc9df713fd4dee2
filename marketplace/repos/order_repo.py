# marketplace/repos/order_repo.py
from datetime import datetime
from typing import Any, Dict, List, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketplace.data.models.counter import CounterModel
from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.order_event import OrderEventModel

_DISPLAY_ID_COUNTER = "order_display_id"


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def next_display_id(self, start: int) -> int:
        rowcount = (
            self.db.query(CounterModel)
            .filter(CounterModel.name == _DISPLAY_ID_COUNTER)
            .update({CounterModel.value: CounterModel.value + 1}, synchronize_session=False)
        )
        if rowcount == 0:
            self.db.add(CounterModel(name=_DISPLAY_ID_COUNTER, value=start))
            self.db.flush()
            return start

        return (
            self.db.query(CounterModel.value)
            .filter(CounterModel.name == _DISPLAY_ID_COUNTER)
            .scalar()
        )

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_event(self, event: OrderEventModel) -> OrderEventModel:
        self.db.add(event)
        self.db.flush()
        return event

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_items(self, order_id: int) -> List[OrderItemModel]:
        return (
            self.db.query(OrderItemModel)
            .filter(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.id)
            .all()
        )

    def get_events(self, order_id: int) -> List[OrderEventModel]:
        return (
            self.db.query(OrderEventModel)
            .filter(OrderEventModel.order_id == order_id)
            .order_by(OrderEventModel.id)
            .all()
        )

    def has_event(self, order_id: int, event_type: str) -> bool:
        return (
            self.db.query(OrderEventModel.id)
            .filter(OrderEventModel.order_id == order_id, OrderEventModel.event_type == event_type)
            .first()
            is not None
        )

    def conditional_update(
        self,
        order_id: int,
        expected_status: str,
        expected_rider_id: str | None,
        values: Dict[str, Any],
    ) -> int:
        """
        UPDATE ... WHERE status = stary AND rider = stary.
        0 wierszy = ktos inny zmienil zamowienie miedzy odczytem a zapisem
        """
        query = self.db.query(OrderModel).filter(
            OrderModel.id == order_id,
            OrderModel.status == expected_status,
        )
        if expected_rider_id is None:
            query = query.filter(OrderModel.rider_id.is_(None))
        else:
            query = query.filter(OrderModel.rider_id == expected_rider_id)

        return query.update(values, synchronize_session=False)

    def list_ready_for_dispatch(self, limit: int) -> List[OrderModel]:
        return (
            self.db.query(OrderModel)
            .filter(
                OrderModel.status == "ready_for_pickup",
                OrderModel.fulfillment_type == "delivery",
                OrderModel.rider_id.is_(None),
            )
            .order_by(OrderModel.created_at)
            .limit(limit)
            .all()
        )

    def find_active_for_rider(self, rider_id: str) -> OrderModel | None:
        return (
            self.db.query(OrderModel)
            .filter(OrderModel.rider_id == rider_id, OrderModel.status == "out_for_delivery")
            .order_by(OrderModel.id)
            .first()
        )

    def list_by_customer(
        self, customer_id: str, statuses: Sequence[str] | None = None, limit: int = 20
    ) -> List[OrderModel]:
        query = self.db.query(OrderModel).filter(OrderModel.customer_id == customer_id)
        if statuses:
            query = query.filter(OrderModel.status.in_(statuses))
        return query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(limit).all()

    def list_by_vendor(
        self, vendor_id: str, statuses: Sequence[str] | None = None, limit: int = 20
    ) -> List[OrderModel]:
        query = self.db.query(OrderModel).filter(OrderModel.vendor_id == vendor_id)
        if statuses:
            query = query.filter(OrderModel.status.in_(statuses))
        return query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(limit).all()

    def count_by_vendor(self, vendor_id: str, status: str) -> int:
        return (
            self.db.query(func.count(OrderModel.id))
            .filter(OrderModel.vendor_id == vendor_id, OrderModel.status == status)
            .scalar()
        )

    def list_stale_pending(self, created_before: datetime, limit: int) -> List[OrderModel]:
        return (
            self.db.query(OrderModel)
            .filter(OrderModel.status == "pending", OrderModel.created_at < created_before)
            .order_by(OrderModel.created_at, OrderModel.id)
            .limit(limit)
            .all()
        )

    def list_delivered_for_rider(
        self,
        rider_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> List[OrderModel]:
        query = self.db.query(OrderModel).filter(
            OrderModel.rider_id == rider_id,
            OrderModel.status.in_(("delivered", "completed")),
        )
        if since is not None:
            query = query.filter(OrderModel.created_at >= since)
        if until is not None:
            query = query.filter(OrderModel.created_at <= until)
        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
