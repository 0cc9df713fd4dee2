from typing import List

from sqlalchemy.orm import Session

from marketplace.data.models.rider_location import RiderLocationModel


class RiderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_location(self, rider_id: str) -> RiderLocationModel | None:
        return (
            self.db.query(RiderLocationModel)
            .filter(RiderLocationModel.rider_id == rider_id)
            .one_or_none()
        )

    def add_location(self, location: RiderLocationModel) -> RiderLocationModel:
        self.db.add(location)
        self.db.flush()
        return location

    def list_by_status(self, status: str, limit: int) -> List[RiderLocationModel]:
        return (
            self.db.query(RiderLocationModel)
            .filter(RiderLocationModel.status == status)
            .order_by(RiderLocationModel.last_updated_at.desc())
            .limit(limit)
            .all()
        )

    def commit(self) -> None:
        self.db.commit()
