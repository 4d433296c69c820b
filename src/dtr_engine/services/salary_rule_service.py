"""Administrative CRUD for salary raise rules."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.errors import InvalidSalaryRuleError, SalaryRuleNotFoundError
from dtr_engine.models import SalaryRule

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "description", "raise_percentage", "start_date", "end_date", "is_active"}


def validate_rule(name: str | None, raise_percentage: Decimal, start_date: date, end_date: date) -> None:
    """Raise ``InvalidSalaryRuleError`` for a rule that cannot be applied."""
    if not name or not name.strip():
        raise InvalidSalaryRuleError("Rule name is required")
    if Decimal(raise_percentage) <= 0:
        raise InvalidSalaryRuleError("Raise percentage must be greater than zero")
    if end_date < start_date:
        raise InvalidSalaryRuleError("End date must not be before start date")


class SalaryRuleService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_rules(self, active_only: bool = False) -> list[SalaryRule]:
        query = select(SalaryRule).order_by(SalaryRule.start_date, SalaryRule.name)
        if active_only:
            query = query.where(SalaryRule.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_rule(self, rule_id: UUID) -> SalaryRule:
        rule = await self.session.get(SalaryRule, rule_id)
        if rule is None:
            raise SalaryRuleNotFoundError(rule_id)
        return rule

    async def create_rule(
        self,
        name: str,
        raise_percentage: Decimal,
        start_date: date,
        end_date: date,
        description: str | None = None,
        is_active: bool = True,
    ) -> SalaryRule:
        validate_rule(name, raise_percentage, start_date, end_date)
        rule = SalaryRule(
            name=name.strip(),
            description=description,
            raise_percentage=Decimal(raise_percentage),
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
        )
        self.session.add(rule)
        await self.session.commit()
        logger.info("Created salary rule %r (%s%%)", rule.name, rule.raise_percentage)
        return rule

    async def update_rule(self, rule_id: UUID, **changes: Any) -> SalaryRule:
        """Update editable fields; the result is validated as a whole."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidSalaryRuleError(f"Unknown field(s): {', '.join(sorted(unknown))}")

        rule = await self.get_rule(rule_id)
        merged = {field: getattr(rule, field) for field in EDITABLE_FIELDS}
        merged.update(changes)
        validate_rule(
            merged["name"], merged["raise_percentage"], merged["start_date"], merged["end_date"]
        )
        for field, value in changes.items():
            setattr(rule, field, value.strip() if field == "name" else value)
        await self.session.commit()
        logger.info("Updated salary rule %s: %s", rule_id, ", ".join(sorted(changes)))
        return rule

    async def delete_rule(self, rule_id: UUID) -> None:
        rule = await self.get_rule(rule_id)
        await self.session.delete(rule)
        await self.session.commit()
        logger.info("Deleted salary rule %s", rule_id)
