import logging
from typing import Optional
from sqlalchemy import update, func
from sqlalchemy.orm import Session

from tour_booking.database import transaction
from tour_booking.exceptions import NotFound, AlreadyRedeemed, Voided, InvalidState
from tour_booking.models import Participant
from tour_booking.bookings.schemas import ParticipantStatus, ScanResult

logger = logging.getLogger(__name__)

class CheckInService:
    """Ticket check-in: each participant's ticket is redeemed at most once.

    A ticket moves ``valid -> redeemed`` on a successful scan, or
    ``valid -> void`` by an administrator. Both target states are terminal.
    Transitions are conditional updates guarded by the expected prior state,
    so concurrent scans of the same ticket let exactly one caller through.
    """

    def __init__(self, db: Session):
        self.db = db

    def scan(self, participant_id: int) -> ScanResult:
        """Redeem a participant's ticket"""

        with transaction(self.db):
            redeemed = self._transition(participant_id, ParticipantStatus.REDEEMED, stamp_scan=True)
            participant = self._get_participant(participant_id)

        if redeemed:
            logger.info("Ticket %s redeemed for %s", participant_id, participant.name)
            return ScanResult(
                success=True,
                message="Check-in successful",
                name=participant.name,
                participant_id=participant.id,
                booking_id=participant.booking_id,
                scanned_at=participant.scanned_at
            )

        self._reject(participant_id, participant)

    def void(self, participant_id: int) -> ScanResult:
        """Administratively invalidate a participant's ticket"""

        with transaction(self.db):
            voided = self._transition(participant_id, ParticipantStatus.VOID)
            participant = self._get_participant(participant_id)

        if voided:
            logger.info("Ticket %s voided", participant_id)
            return ScanResult(
                success=True,
                message="Ticket voided",
                name=participant.name,
                participant_id=participant.id,
                booking_id=participant.booking_id
            )

        self._reject(participant_id, participant)

    def _transition(self, participant_id: int, target: ParticipantStatus, stamp_scan: bool = False) -> bool:
        values = {"status": target.value, "updated_at": func.now()}
        if stamp_scan:
            values["scanned_at"] = func.now()

        result = self.db.execute(
            update(Participant).where(
                Participant.id == participant_id,
                Participant.status == ParticipantStatus.VALID.value
            ).values(**values).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _get_participant(self, participant_id: int) -> Optional[Participant]:
        return self.db.query(Participant).filter(Participant.id == participant_id).first()

    def _reject(self, participant_id: int, participant: Optional[Participant]):
        """Raise the error matching a ticket that could not transition"""

        if participant is None:
            logger.warning("Scan of unknown ticket %s", participant_id)
            raise NotFound("Ticket not found", participant_id=participant_id)

        if participant.status == ParticipantStatus.REDEEMED.value:
            logger.warning("Ticket %s already redeemed at %s", participant_id, participant.scanned_at)
            raise AlreadyRedeemed(
                "Ticket has already been used",
                name=participant.name,
                participant_id=participant.id,
                scanned_at=participant.scanned_at
            )

        if participant.status == ParticipantStatus.VOID.value:
            logger.warning("Ticket %s is void", participant_id)
            raise Voided("Ticket is void or canceled", name=participant.name, participant_id=participant.id)

        logger.error("Ticket %s has unexpected status %r", participant_id, participant.status)
        raise InvalidState(
            "Ticket status is not valid for check-in",
            name=participant.name,
            participant_id=participant.id
        )
