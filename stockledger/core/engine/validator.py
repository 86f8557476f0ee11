"""
Mutation validator.

Replays a proposed ledger and rejects it if any SELL would exceed the
holding at that point in time. Pure checks: nothing is persisted here.
"""

from collections import defaultdict

from loguru import logger

from stockledger.core.engine.replay import PositionReplayEngine, sort_by_timestamp
from stockledger.core.exceptions.ledger import OversellRejectedError
from stockledger.core.models.ledger import Ledger
from stockledger.core.models.position import Timeline
from stockledger.core.models.trade import InstrumentKey
from stockledger.core.types.financial import ZERO, exceeds, is_depleted


class MutationValidator:
    """Oversell checks for single mutations and whole ledgers."""

    def __init__(self, engine: PositionReplayEngine | None = None) -> None:
        self.engine = engine or PositionReplayEngine()

    def validate(
        self, proposed: Ledger, instrument: InstrumentKey | tuple[str, str]
    ) -> Timeline:
        """
        Check one instrument of a proposed ledger.

        Args:
            proposed: Ledger with the mutation already applied
            instrument: Instrument touched by the mutation

        Returns:
            The strict timeline of the instrument

        Raises:
            OversellRejectedError: On the first SELL exceeding the holding
        """
        key = InstrumentKey(*instrument)
        try:
            return self.engine.replay(proposed.lots_for(key), instrument=key, strict=True)
        except OversellRejectedError as e:
            logger.warning(f"Rejected mutation on {key}: {e}")
            raise

    def scan_ledger(self, ledger: Ledger) -> None:
        """
        Check every instrument of a ledger in global timestamp order.

        Raises:
            OversellRejectedError: On the first event that would leave a
                negative holding anywhere in the ledger
        """
        holdings: dict[InstrumentKey, float] = defaultdict(float)
        for record in sort_by_timestamp(ledger.lots):
            key = record.instrument
            current = holdings[key]
            if record.side.is_buy:
                holdings[key] = current + record.quantity
                continue
            if exceeds(record.quantity, current):
                logger.warning(f"Negative holding for {key} at {record.timestamp}")
                raise OversellRejectedError(
                    instrument=tuple(key),
                    timestamp=record.timestamp,
                    requested_qty=record.quantity,
                    holding_at_time=current,
                    trade_id=record.id,
                )
            remaining = current - record.quantity
            holdings[key] = ZERO if is_depleted(remaining) else remaining

    def is_valid(self, ledger: Ledger) -> bool:
        """Non-raising form of scan_ledger."""
        try:
            self.scan_ledger(ledger)
        except OversellRejectedError:
            return False
        return True
