"""Domain Models 测试 -- 快照宽松校验、触发条件归一化、状态机"""

import pytest
from oneshot.core.exceptions import UnknownPredicateError
from oneshot.core.models import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    EngagementLevel,
    FieldMissingPredicate,
    GraduationProximityPredicate,
    TaskDefinition,
    TaskStatus,
    UserProfileSnapshot,
    validate_transition,
)
from oneshot.core.models.triggers import normalize_triggers


class TestUserProfileSnapshot:
    """快照宽松校验"""

    def test_camel_case_input(self, new_athlete_payload):
        snapshot = UserProfileSnapshot.model_validate(new_athlete_payload)
        assert snapshot.user_id == "42"
        assert snapshot.graduation_year == 2027
        assert snapshot.completion_pct == 20.0
        assert snapshot.missing_fields == ("position", "highSchoolName")

    def test_snake_case_input(self):
        snapshot = UserProfileSnapshot.model_validate(
            {"user_id": "7", "graduation_year": 2026, "missing_fields": ["gpa"]}
        )
        assert snapshot.graduation_year == 2026
        assert snapshot.is_field_missing("gpa")

    def test_numeric_strings_coerced(self):
        snapshot = UserProfileSnapshot.model_validate(
            {"graduationYear": "2028", "completionPct": "45.5"}
        )
        assert snapshot.graduation_year == 2028
        assert snapshot.completion_pct == 45.5
        assert snapshot.missing_fields == ()

    def test_wrong_types_become_missing(self):
        snapshot = UserProfileSnapshot.model_validate(
            {
                "userId": 42,
                "graduationYear": "soon",
                "completionPct": True,
                "role": 3,
            }
        )
        assert snapshot.user_id == "42"
        assert snapshot.graduation_year is None
        assert snapshot.completion_pct is None
        assert snapshot.role is None
        assert set(snapshot.missing_fields) == {"graduationYear", "completionPct", "role"}

    def test_unknown_engagement_dropped(self):
        snapshot = UserProfileSnapshot.model_validate({"engagementLevel": "ecstatic"})
        assert snapshot.engagement_level is None

    def test_known_engagement_kept(self):
        snapshot = UserProfileSnapshot.model_validate({"engagementLevel": "low"})
        assert snapshot.engagement_level == EngagementLevel.LOW

    def test_non_string_missing_fields_ignored(self):
        snapshot = UserProfileSnapshot.model_validate({"missingFields": ["gpa", 7, None]})
        assert snapshot.missing_fields == ("gpa",)

    def test_profile_fields(self):
        snapshot = UserProfileSnapshot.model_validate(
            {"profileFields": {"gpa": 3.6, "position": "", "videos": []}}
        )
        assert not snapshot.is_field_missing("gpa")
        assert snapshot.is_field_missing("position")
        assert snapshot.is_field_missing("videos")
        assert snapshot.is_field_missing("ncaaId")

    def test_without_profile_fields_only_listed_are_missing(self):
        snapshot = UserProfileSnapshot.model_validate({"missingFields": ["gpa"]})
        assert not snapshot.is_field_missing("ncaaId")


class TestTriggerNormalization:
    """触发条件两种写法归一化为 tagged union"""

    def test_object_form(self):
        entries = normalize_triggers(
            {"fieldMissing": ["gpa"], "graduationProximity": {"yearsThreshold": 2}}
        )
        assert entries == [
            {"kind": "fieldMissing", "fields": ["gpa"]},
            {"yearsThreshold": 2, "kind": "graduationProximity"},
        ]

    def test_list_form_passthrough(self):
        raw = [{"kind": "role", "roles": ["transfer_portal"]}]
        assert normalize_triggers(raw) == raw

    def test_none(self):
        assert normalize_triggers(None) == []

    def test_unknown_kind(self):
        with pytest.raises(UnknownPredicateError):
            normalize_triggers({"weather": ["sunny"]}, "outdoor_task")

    def test_task_definition_builds_predicates(self):
        task = TaskDefinition.model_validate(
            {
                "taskKey": "add_gpa_academics",
                "title": "Add GPA",
                "triggers": {
                    "fieldMissing": ["gpa"],
                    "graduationProximity": {"yearsThreshold": 2},
                },
            }
        )
        assert isinstance(task.triggers[0], FieldMissingPredicate)
        assert isinstance(task.triggers[1], GraduationProximityPredicate)
        assert task.triggers[1].years_threshold == 2

    def test_task_definition_defaults(self):
        task = TaskDefinition.model_validate({"taskKey": "t", "title": "T"})
        assert task.triggers == ()
        assert task.applies_to("football", "high_school")
        assert not task.applies_to("basketball", "high_school")
        assert not task.applies_to("football", "college")
        # 缺失的 sport/role 不参与过滤
        assert task.applies_to("football", None)
        assert task.applies_to(None, "transfer_portal")
        assert not task.applies_to("basketball", None)


class TestStateMachine:
    """任务状态流转规则"""

    @pytest.mark.parametrize(
        ("from_status", "to_status"),
        [
            (TaskStatus.LOCKED, TaskStatus.UNLOCKED),
            (TaskStatus.LOCKED, TaskStatus.TRIGGERED),
            (TaskStatus.UNLOCKED, TaskStatus.TRIGGERED),
            (TaskStatus.UNLOCKED, TaskStatus.COMPLETED),
            (TaskStatus.TRIGGERED, TaskStatus.UNLOCKED),
            (TaskStatus.TRIGGERED, TaskStatus.COMPLETED),
            (TaskStatus.TRIGGERED, TaskStatus.DISMISSED),
        ],
    )
    def test_valid(self, from_status, to_status):
        assert validate_transition(from_status, to_status)

    @pytest.mark.parametrize(
        ("from_status", "to_status"),
        [
            (TaskStatus.LOCKED, TaskStatus.COMPLETED),
            (TaskStatus.LOCKED, TaskStatus.DISMISSED),
            (TaskStatus.COMPLETED, TaskStatus.TRIGGERED),
            (TaskStatus.DISMISSED, TaskStatus.UNLOCKED),
        ],
    )
    def test_invalid(self, from_status, to_status):
        assert not validate_transition(from_status, to_status)

    def test_terminal_states_have_no_exits(self):
        for status in TERMINAL_STATES:
            assert VALID_TRANSITIONS[status] == set()
