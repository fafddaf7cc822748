"""
Edit usage — counts accepted AI edits against the free / pro allowance,
persisted as a small JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass
class EditUsage:
    edit_count: int = 0
    monthly_edit_count: int = 0
    monthly_reset_date: Optional[str] = None  # ISO date
    is_pro: bool = False


@dataclass
class UsageStatus:
    can_edit: bool
    remaining_edits: int
    remaining_monthly_edits: int
    edit_count: int
    monthly_edit_count: int
    is_pro: bool
    monthly_reset_date: Optional[str]


class UsageTracker:
    """Free users get a fixed number of AI edits; pro users a monthly quota.

    Parameters
    ----------
    path:
        JSON file holding the :class:`EditUsage` record.
    free_limit:
        Lifetime accepted edits for non-pro users.
    pro_monthly_limit:
        Accepted edits per period for pro users.
    period_days:
        Length of the monthly period.
    today:
        Clock override, mostly for tests.
    """

    def __init__(
        self,
        path: str,
        free_limit: int = 5,
        pro_monthly_limit: int = 50,
        period_days: int = 30,
        today: Callable[[], date] = _today,
    ) -> None:
        self.path = path
        self.free_limit = free_limit
        self.pro_monthly_limit = pro_monthly_limit
        self.period_days = period_days
        self._today = today

    @classmethod
    def from_config(cls, cfg) -> "UsageTracker":
        return cls(
            cfg.USAGE_FILE,
            free_limit=cfg.FREE_EDIT_LIMIT,
            pro_monthly_limit=cfg.PRO_MONTHLY_EDIT_LIMIT,
            period_days=cfg.USAGE_PERIOD_DAYS,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> EditUsage:
        if not os.path.isfile(self.path):
            return self._new_record()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("[Usage] Unreadable usage file %s: %s", self.path, exc)
            return self._new_record()
        if not isinstance(data, dict):
            logger.warning("[Usage] Usage file %s holds no record, starting over", self.path)
            return self._new_record()

        fields = EditUsage.__dataclass_fields__
        usage = EditUsage(**{k: v for k, v in data.items() if k in fields})
        if usage.monthly_reset_date:
            try:
                date.fromisoformat(usage.monthly_reset_date)
            except (TypeError, ValueError) as exc:
                logger.warning("[Usage] Bad reset date in %s: %s", self.path, exc)
                return self._new_record()
        return usage

    def save(self, usage: EditUsage) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(asdict(usage), f, indent=2)

    def _new_record(self) -> EditUsage:
        return EditUsage(monthly_reset_date=self._next_reset().isoformat())

    def _next_reset(self) -> date:
        return self._today() + timedelta(days=self.period_days)

    # ------------------------------------------------------------------
    # Limits
    # ------------------------------------------------------------------

    def _current(self) -> EditUsage:
        """Load the record, rolling the monthly counter over if due."""
        usage = self.load()
        if usage.monthly_reset_date:
            reset = date.fromisoformat(usage.monthly_reset_date)
            if self._today() >= reset:
                logger.info("[Usage] Monthly period ended, resetting counter")
                usage.monthly_edit_count = 0
                usage.monthly_reset_date = self._next_reset().isoformat()
                self.save(usage)
        return usage

    def _allowed(self, usage: EditUsage) -> bool:
        if usage.is_pro:
            return usage.monthly_edit_count < self.pro_monthly_limit
        return usage.edit_count < self.free_limit

    def can_edit(self) -> bool:
        return self._allowed(self._current())

    def record_edit(self) -> UsageStatus:
        usage = self._current()
        usage.edit_count += 1
        usage.monthly_edit_count += 1
        self.save(usage)
        return self._status(usage)

    def set_pro(self, is_pro: bool) -> None:
        usage = self._current()
        usage.is_pro = is_pro
        self.save(usage)

    def status(self) -> UsageStatus:
        return self._status(self._current())

    def _status(self, usage: EditUsage) -> UsageStatus:
        return UsageStatus(
            can_edit=self._allowed(usage),
            remaining_edits=max(0, self.free_limit - usage.edit_count),
            remaining_monthly_edits=max(0, self.pro_monthly_limit - usage.monthly_edit_count),
            edit_count=usage.edit_count,
            monthly_edit_count=usage.monthly_edit_count,
            is_pro=usage.is_pro,
            monthly_reset_date=usage.monthly_reset_date,
        )
