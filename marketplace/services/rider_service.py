# marketplace/services/rider_service.py
from datetime import timedelta

from sqlalchemy.orm import Session

from marketplace.data.models.rider_location import RiderLocationModel
from marketplace.domain.dispatch import RiderStatus, is_stale
from marketplace.repos.rider_repo import RiderRepo
from marketplace.utils.clock import Clock, utcnow
from marketplace.utils.settings import RIDER_STALE_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def _check_coordinates(lat: float, lng: float) -> None:
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValueError("Invalid coordinates")


class RiderService:
    """Heartbeat kuriera - lokalizacja i status (offline / online / busy)."""

    def __init__(self, db: Session, clock: Clock = utcnow, stale_seconds: int = RIDER_STALE_SECONDS):
        self.repo = RiderRepo(db)
        self.clock = clock
        self.stale_after = timedelta(seconds=stale_seconds)

    def update_location(self, rider_id: str, lat: float, lng: float) -> RiderLocationModel:
        _check_coordinates(lat, lng)
        now = self.clock()

        location = self.repo.get_location(rider_id)
        if location is None:
            # pierwszy ping = kurier online
            location = self.repo.add_location(
                RiderLocationModel(
                    rider_id=rider_id,
                    lat=lat,
                    lng=lng,
                    status=RiderStatus.ONLINE.value,
                    last_updated_at=now,
                    created_at=now,
                )
            )
        else:
            location.lat = lat
            location.lng = lng
            location.last_updated_at = now

        self.repo.commit()
        return location

    def set_status(
        self,
        rider_id: str,
        status: str,
        lat: float | None = None,
        lng: float | None = None,
    ) -> RiderLocationModel:
        status = RiderStatus(status).value
        has_position = lat is not None and lng is not None
        if has_position:
            _check_coordinates(lat, lng)
        now = self.clock()

        location = self.repo.get_location(rider_id)
        if location is None:
            if not has_position:
                raise ValueError("Location is required when a rider reports status for the first time")
            location = self.repo.add_location(
                RiderLocationModel(
                    rider_id=rider_id,
                    lat=lat,
                    lng=lng,
                    status=status,
                    last_updated_at=now,
                    created_at=now,
                )
            )
        else:
            location.status = status
            location.last_updated_at = now
            if has_position:
                location.lat = lat
                location.lng = lng

        self.repo.commit()
        logger.info(f"Kurier {rider_id} -> {status}")
        return location

    def go_online(self, rider_id: str, lat: float, lng: float) -> RiderLocationModel:
        return self.set_status(rider_id, RiderStatus.ONLINE.value, lat, lng)

    def go_offline(self, rider_id: str) -> RiderLocationModel | None:
        if self.repo.get_location(rider_id) is None:
            return None
        return self.set_status(rider_id, RiderStatus.OFFLINE.value)

    def get_location(self, rider_id: str) -> RiderLocationModel | None:
        location = self.repo.get_location(rider_id)
        if location is None or is_stale(location.last_updated_at, self.clock(), self.stale_after):
            return None
        return location
