"""Tests for the payroll aggregation engine."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from dtr_engine.calculators.attendance import classify_day
from dtr_engine.calculators.pay_period import PayPeriod
from dtr_engine.calculators.payroll import PayrollCalculator, PeriodSnapshot
from dtr_engine.calculators.types import EmployeeProfile, LeaveDay, LeaveKind, RaiseRule
from dtr_engine.constants import BIRTHDAY_BONUS_LABEL
from dtr_engine.errors import InvalidManualDeductionError
from tests.helpers import MANILA, entry, full_day, manila, slot

PERIOD = PayPeriod(date(2024, 3, 16), date(2024, 4, 15))
WEEK_ONE = [date(2024, 3, 18) + timedelta(days=i) for i in range(5)]
WEEK_TWO = [date(2024, 3, 25) + timedelta(days=i) for i in range(5)]
TEN_DAYS = WEEK_ONE + WEEK_TWO


def make_profile(**overrides) -> EmployeeProfile:
    values = {
        "employee_id": uuid4(),
        "full_name": "Ana Reyes",
        "hire_date": date(2020, 1, 6),
        "birth_date": date(1990, 7, 1),
        "daily_rate": Decimal("500"),
        "position": "Regular Staff",
        "branch": "Solano",
    }
    values.update(overrides)
    return EmployeeProfile(**values)


def make_snapshot(profile, worked=None, scheduled=(), leaves=(), rules=(), snapshot=None):
    """Snapshot with a schedule on every worked/scheduled day."""
    snapshot = snapshot or PeriodSnapshot()
    worked = worked or {}
    for day in set(scheduled) | set(worked):
        snapshot.schedules[(profile.employee_id, day)] = slot(day)
    for day, records in worked.items():
        snapshot.records[(profile.employee_id, day)] = records
    for day in leaves:
        snapshot.leaves[(profile.employee_id, day)] = LeaveDay(day, LeaveKind.DAY_OFF)
    snapshot.rules.extend(rules)
    return snapshot


@pytest.fixture
def calculator() -> PayrollCalculator:
    return PayrollCalculator(
        grace_minutes=15,
        rate_per_minute=Decimal("1.60"),
        birthday_bonuses={"Team Leader": Decimal("1000")},
        tz=MANILA,
        engine_version="test",
    )


class TestPayrollComputation:
    """Core gross/deduction/net arithmetic."""

    def test_ten_days_with_thirty_minutes_late(self, calculator):
        """500/day for 10 days with 30 late minutes at 1.60 nets 4952."""
        profile = make_profile()
        worked = {day: full_day(day) for day in TEN_DAYS}
        late_day = TEN_DAYS[3]
        worked[late_day] = [
            entry(manila(late_day, 8, 30), manila(late_day, 12, 30)),
            entry(manila(late_day, 13, 30), manila(late_day, 17, 30)),
        ]

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.days_worked == 10
        assert line.base_gross_pay == Decimal("5000")
        assert line.total_minutes_late == 30
        assert line.total_minutes_undertime == 0
        assert line.lateness_deduction == Decimal("48.00")
        assert line.net_pay == Decimal("4952.00")
        assert line.total_hours == Decimal(80)

    def test_lateness_within_grace_is_not_penalized(self, calculator):
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: full_day(day, arrive=(8, 10))}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_late == 0
        assert line.lateness_deduction == 0

    def test_arrival_exactly_at_grace_is_not_late(self, calculator):
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: full_day(day, arrive=(8, 15))}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_late == 0
        assert line.lateness_deduction == 0

    def test_one_minute_past_grace_counts_whole_lateness(self, calculator):
        """08:16 is past the 15-minute grace, so all 16 minutes are deducted."""
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: full_day(day, arrive=(8, 16))}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_late == 16
        assert line.lateness_deduction == Decimal("25.60")

    def test_one_minute_late_without_grace(self):
        """With no grace, one minute late deducts exactly one minute."""
        calculator = PayrollCalculator(grace_minutes=0, rate_per_minute=Decimal("1.60"), tz=MANILA)
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {
            day: [
                entry(manila(day, 8, 1), manila(day, 12)),
                entry(manila(day, 12, 59), manila(day, 17)),
            ]
        }

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_late == 1
        assert line.lateness_deduction == Decimal("1.60")

    def test_lateness_past_grace_counts_whole_rounded_minutes(self, calculator):
        """15m31s late rounds to 16 minutes, all of them penalized."""
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {
            day: [
                entry(manila(day, 8, 15, 31), manila(day, 12)),
                entry(manila(day, 12, 30), manila(day, 17)),
            ]
        }

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_late == 16

    def test_undertime(self, calculator):
        """Leaving at 16:00 on an 08:00-17:00 schedule is 60 minutes short."""
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: full_day(day, leave=(16, 0))}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_minutes_undertime == 60
        assert line.undertime_deduction == Decimal("96.00")
        assert line.net_pay == Decimal("404.00")

    def test_open_second_segment_has_no_undertime(self, calculator):
        """A missing final clock-out counts up to the scheduled end."""
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: [entry(manila(day, 8), manila(day, 12)), entry(manila(day, 13))]}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_hours == Decimal(8)
        assert line.total_minutes_undertime == 0

    def test_hours_match_the_timesheet_classification(self, calculator):
        """Leaving at 16:58 rounds to the same 8.0 hours the timesheet shows."""
        profile = make_profile()
        day = WEEK_ONE[0]
        records = full_day(day, leave=(16, 58))
        worked = {day: records}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))
        attendance = classify_day(day, slot(day), None, records, 15, MANILA)

        assert attendance.hours_worked == Decimal("8.0")
        assert line.total_hours == attendance.hours_worked
        assert line.total_minutes_undertime == 0
        assert line.net_pay == Decimal("500")

    def test_undertime_follows_rounded_hours(self, calculator):
        """16:40 is 7.67 hours, shown and paid as 7.7: 18 minutes short."""
        profile = make_profile()
        day = WEEK_ONE[0]
        worked = {day: full_day(day, leave=(16, 40))}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.total_hours == Decimal("7.7")
        assert line.total_minutes_undertime == 18
        assert line.undertime_deduction == Decimal("28.80")


class TestDayCounting:
    """Leave, absence and unscheduled days."""

    def test_leave_days_are_paid(self, calculator):
        profile = make_profile()
        worked = {day: full_day(day) for day in WEEK_ONE[:3]}
        snapshot = make_snapshot(profile, worked, leaves=WEEK_ONE[3:])

        line = calculator.calculate_employee(profile, PERIOD, snapshot)

        assert line.days_worked == 3
        assert line.leave_days == 2
        assert line.base_gross_pay == Decimal("2500")

    def test_absence_is_simply_not_paid(self, calculator):
        """Scheduled days without records add neither pay nor deductions."""
        profile = make_profile()
        worked = {day: full_day(day) for day in WEEK_ONE[:3]}
        snapshot = make_snapshot(profile, worked, scheduled=WEEK_ONE)

        line = calculator.calculate_employee(profile, PERIOD, snapshot)

        assert line.days_worked == 3
        assert line.total_minutes_undertime == 0
        assert line.base_gross_pay == Decimal("1500")

    def test_unscheduled_records_are_ignored(self, calculator):
        profile = make_profile()
        saturday = date(2024, 3, 23)
        snapshot = make_snapshot(profile, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        snapshot.records[(profile.employee_id, saturday)] = full_day(saturday)

        line = calculator.calculate_employee(profile, PERIOD, snapshot)

        assert line.days_worked == 1

    def test_employee_with_no_work_or_leave_is_excluded(self, calculator):
        profile = make_profile()
        snapshot = make_snapshot(profile, scheduled=WEEK_ONE)

        assert calculator.calculate_employee(profile, PERIOD, snapshot) is None


class TestRaisesAndBonus:
    def test_raise_applies_per_worked_day(self, calculator):
        """10% on 500 for three covered days adds 150."""
        profile = make_profile()
        rule = RaiseRule("Anniversary", Decimal("10"), WEEK_ONE[0], WEEK_ONE[2])
        worked = {day: full_day(day) for day in WEEK_ONE}

        line = calculator.calculate_employee(
            profile, PERIOD, make_snapshot(profile, worked, rules=[rule])
        )

        assert line.salary_raise == Decimal("150")
        assert line.raise_breakdown == {"Anniversary": Decimal("150")}
        assert line.total_gross_pay == Decimal("2650")

    def test_overlapping_rules_both_apply(self, calculator):
        profile = make_profile()
        rules = [
            RaiseRule("Anniversary", Decimal("10"), WEEK_ONE[0], WEEK_ONE[2]),
            RaiseRule("Summer", Decimal("5"), WEEK_ONE[2], WEEK_ONE[4]),
        ]
        worked = {day: full_day(day) for day in WEEK_ONE}

        line = calculator.calculate_employee(
            profile, PERIOD, make_snapshot(profile, worked, rules=rules)
        )

        assert line.salary_raise == Decimal("225")
        assert line.raise_breakdown == {"Anniversary": Decimal("150"), "Summer": Decimal("75")}

    def test_inactive_rule_ignored(self, calculator):
        profile = make_profile()
        rule = RaiseRule("Paused", Decimal("10"), WEEK_ONE[0], WEEK_ONE[4], is_active=False)
        worked = {day: full_day(day) for day in WEEK_ONE}

        line = calculator.calculate_employee(
            profile, PERIOD, make_snapshot(profile, worked, rules=[rule])
        )

        assert line.salary_raise == 0

    def test_raise_not_applied_on_leave_days(self, calculator):
        profile = make_profile()
        rule = RaiseRule("Anniversary", Decimal("10"), WEEK_ONE[0], WEEK_ONE[4])
        worked = {day: full_day(day) for day in WEEK_ONE[:2]}
        snapshot = make_snapshot(profile, worked, leaves=WEEK_ONE[2:], rules=[rule])

        line = calculator.calculate_employee(profile, PERIOD, snapshot)

        assert line.salary_raise == Decimal("100")

    def test_birthday_bonus_in_end_month(self, calculator):
        """An April birthday touches a March 16 - April 15 period."""
        profile = make_profile(birth_date=date(1992, 4, 28), position="team leader")
        worked = {WEEK_ONE[0]: full_day(WEEK_ONE[0])}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.birthday_bonus == Decimal("1000")
        assert line.raise_breakdown[BIRTHDAY_BONUS_LABEL] == Decimal("1000")
        assert line.total_gross_pay == Decimal("1500")

    def test_no_bonus_for_unconfigured_position(self, calculator):
        profile = make_profile(birth_date=date(1992, 3, 1), position="Regular Staff")
        worked = {WEEK_ONE[0]: full_day(WEEK_ONE[0])}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.birthday_bonus == 0
        assert BIRTHDAY_BONUS_LABEL not in line.raise_breakdown

    def test_no_bonus_outside_birth_month(self, calculator):
        profile = make_profile(birth_date=date(1992, 5, 1), position="Team Leader")
        worked = {WEEK_ONE[0]: full_day(WEEK_ONE[0])}

        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        assert line.birthday_bonus == 0


class TestManualDeduction:
    def test_override_rederives_net(self, calculator):
        profile = make_profile()
        worked = {day: full_day(day) for day in WEEK_ONE}
        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        line.apply_manual_deduction(Decimal("200"))

        assert line.manual_deduction == Decimal("200")
        assert line.net_pay == Decimal("2300")

    def test_net_never_negative(self, calculator):
        profile = make_profile()
        worked = {WEEK_ONE[0]: full_day(WEEK_ONE[0])}
        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        line.apply_manual_deduction(Decimal("10000"))

        assert line.net_pay == 0

    def test_negative_override_rejected(self, calculator):
        profile = make_profile()
        worked = {WEEK_ONE[0]: full_day(WEEK_ONE[0])}
        line = calculator.calculate_employee(profile, PERIOD, make_snapshot(profile, worked))

        with pytest.raises(InvalidManualDeductionError):
            line.apply_manual_deduction(Decimal("-1"))


class TestDeterminism:
    def test_same_snapshot_same_calculation_id(self, calculator):
        profile = make_profile()
        worked = {day: full_day(day) for day in WEEK_ONE}
        snapshot = make_snapshot(profile, worked)

        first = calculator.calculate_employee(profile, PERIOD, snapshot)
        second = calculator.calculate_employee(profile, PERIOD, snapshot)

        assert first.to_canonical_dict() == second.to_canonical_dict()

    def test_engine_version_changes_calculation_id(self, calculator):
        profile = make_profile()
        snapshot = make_snapshot(profile, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        other = PayrollCalculator(15, Decimal("1.60"), tz=MANILA, engine_version="other")

        assert (
            calculator.calculate_employee(profile, PERIOD, snapshot).calculation_id
            != other.calculate_employee(profile, PERIOD, snapshot).calculation_id
        )

    def test_manual_deduction_keeps_calculation_id(self, calculator):
        profile = make_profile()
        snapshot = make_snapshot(profile, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        line = calculator.calculate_employee(profile, PERIOD, snapshot)
        before = line.calculation_id

        line.apply_manual_deduction(Decimal("50"))

        assert line.calculation_id == before


class TestCalculateAll:
    def test_bad_employee_is_skipped_not_fatal(self, calculator):
        """A missing rate skips that employee and reports it."""
        good = make_profile(full_name="Ana Reyes")
        no_rate = make_profile(full_name="Ben Cruz", daily_rate=None, branch=None, position=None)
        snapshot = make_snapshot(good, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        make_snapshot(no_rate, {WEEK_ONE[0]: full_day(WEEK_ONE[0])}, snapshot=snapshot)

        preview = calculator.calculate_all([no_rate, good], PERIOD, snapshot)

        assert [line.employee_id for line in preview.lines] == [good.employee_id]
        assert no_rate.employee_id in preview.errors

    def test_missing_rate_without_attendance_is_excluded(self, calculator):
        """Nothing to pay means no rate lookup and no reported error."""
        good = make_profile(full_name="Ana Reyes")
        idle = make_profile(full_name="Ben Cruz", daily_rate=None, branch=None, position=None)
        snapshot = make_snapshot(good, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        make_snapshot(idle, scheduled=WEEK_ONE, snapshot=snapshot)

        preview = calculator.calculate_all([idle, good], PERIOD, snapshot)

        assert [line.employee_id for line in preview.lines] == [good.employee_id]
        assert preview.errors == {}

    def test_malformed_day_skips_employee(self, calculator):
        profile = make_profile()
        day = WEEK_ONE[0]
        snapshot = make_snapshot(profile, {day: full_day(day) + [entry(manila(day, 18))]})

        preview = calculator.calculate_all([profile], PERIOD, snapshot)

        assert preview.lines == []
        assert profile.employee_id in preview.errors

    def test_selection(self, calculator):
        """All lines start selected; deselected lines leave the total."""
        ana = make_profile(full_name="Ana Reyes")
        ben = make_profile(full_name="Ben Cruz")
        snapshot = make_snapshot(ana, {WEEK_ONE[0]: full_day(WEEK_ONE[0])})
        make_snapshot(ben, {WEEK_ONE[1]: full_day(WEEK_ONE[1])}, snapshot=snapshot)

        preview = calculator.calculate_all([ana, ben], PERIOD, snapshot)

        assert [line.employee_name for line in preview.lines] == ["Ana Reyes", "Ben Cruz"]
        assert preview.total_net_selected == Decimal("1000")

        preview.set_selected(ben.employee_id, False)
        preview.set_manual_deduction(ana.employee_id, Decimal("100"))

        assert [line.employee_id for line in preview.selected_lines] == [ana.employee_id]
        assert preview.total_net_selected == Decimal("400")
