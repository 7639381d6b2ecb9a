"""Test scheduling policy schema."""
import pytest
from pydantic import ValidationError as PydanticValidationError

from psy_scheduler.policy import DEFAULT_POLICY, BlackoutWindow, SchedulingPolicy


def test_defaults():
    policy = SchedulingPolicy()
    assert policy.business_start == "09:00"
    assert policy.business_end == "20:00"
    assert policy.granularity_minutes == 15
    assert (policy.min_duration_minutes, policy.max_duration_minutes) == (30, 120)
    assert policy.horizon_months == 6
    assert policy.blackout_windows == [BlackoutWindow(label="lunch", start="13:00", end="14:00")]
    assert "12-25" in policy.holidays
    assert policy.working_days == ["monday", "tuesday", "wednesday", "thursday", "friday"]


def test_default_policy_is_frozen():
    with pytest.raises(PydanticValidationError):
        DEFAULT_POLICY.granularity_minutes = 30


def test_times_are_normalized():
    policy = SchedulingPolicy(business_start="8:00", business_end="18:30")
    assert policy.business_start == "08:00"
    assert policy.business_start_minutes == 480


def test_business_hours_order():
    with pytest.raises(PydanticValidationError, match="start before they end"):
        SchedulingPolicy(business_start="20:00", business_end="09:00")


def test_blackout_order():
    with pytest.raises(PydanticValidationError, match="must start before it ends"):
        BlackoutWindow(label="lunch", start="14:00", end="13:00")


def test_duration_bounds():
    with pytest.raises(PydanticValidationError, match="Minimum duration"):
        SchedulingPolicy(min_duration_minutes=90, max_duration_minutes=60)


def test_invalid_time():
    with pytest.raises(PydanticValidationError, match="Invalid time"):
        SchedulingPolicy(business_start="9am")


def test_invalid_holiday_format():
    with pytest.raises(PydanticValidationError, match="MM-DD"):
        SchedulingPolicy(holidays=["2025-12-25"])


def test_invalid_weekday():
    with pytest.raises(PydanticValidationError, match="Unknown weekday"):
        SchedulingPolicy(working_days=["monday", "funday"])


def test_malformed_regex_caught_at_build_time():
    with pytest.raises(PydanticValidationError, match="Invalid phone pattern"):
        SchedulingPolicy(phone_pattern="(unclosed")
    with pytest.raises(PydanticValidationError, match="Invalid sensitive pattern"):
        SchedulingPolicy(sensitive_patterns=["[0-9"])


def test_granularity_must_be_positive():
    with pytest.raises(PydanticValidationError):
        SchedulingPolicy(granularity_minutes=0)


def test_json_round_trip():
    policy = SchedulingPolicy(holidays=["01-01"], granularity_minutes=30,
                              min_duration_minutes=30, max_duration_minutes=90)
    assert SchedulingPolicy(**policy.model_dump(mode="json")) == policy
