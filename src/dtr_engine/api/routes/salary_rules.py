"""Salary rule administration endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from dtr_engine.api.dependencies import DbSession
from dtr_engine.api.schemas import (
    ErrorResponse,
    SalaryRuleCreate,
    SalaryRuleResponse,
    SalaryRuleUpdate,
)
from dtr_engine.services.salary_rule_service import SalaryRuleService

router = APIRouter(prefix="/salary-rules", tags=["salary-rules"])


@router.get("", response_model=list[SalaryRuleResponse])
async def list_rules(
    db: DbSession,
    active_only: Annotated[bool, Query()] = False,
) -> list[SalaryRuleResponse]:
    rules = await SalaryRuleService(db).list_rules(active_only=active_only)
    return [SalaryRuleResponse.model_validate(rule) for rule in rules]


@router.post(
    "",
    response_model=SalaryRuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_rule(db: DbSession, payload: SalaryRuleCreate) -> SalaryRuleResponse:
    rule = await SalaryRuleService(db).create_rule(**payload.model_dump())
    return SalaryRuleResponse.model_validate(rule)


@router.patch(
    "/{rule_id}",
    response_model=SalaryRuleResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_rule(
    db: DbSession,
    rule_id: Annotated[UUID, Path()],
    payload: SalaryRuleUpdate,
) -> SalaryRuleResponse:
    rule = await SalaryRuleService(db).update_rule(
        rule_id, **payload.model_dump(exclude_unset=True)
    )
    return SalaryRuleResponse.model_validate(rule)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_rule(db: DbSession, rule_id: Annotated[UUID, Path()]) -> None:
    await SalaryRuleService(db).delete_rule(rule_id)
