"""Tests for tom.memory.aggregation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from tom.memory.aggregation import aggregate_session_into_model, extract_observations
from tom.memory.models import PreferenceObservation, UserModel


class TestExtractObservations:
    def test_fixed_order(self, make_session_model) -> None:
        session = make_session_model(
            coding_preferences=[".ts", ".py"],
            interaction_patterns=["uses-Edit"],
            frustration=True,
            satisfaction=False,
            urgency="high",
        )

        assert extract_observations(session) == [
            PreferenceObservation("codingPreferences", "preference", ".ts"),
            PreferenceObservation("codingPreferences", "preference", ".py"),
            PreferenceObservation("interactionStyle", "pattern", "uses-Edit"),
            PreferenceObservation("emotionalSignals", "frustration", "true"),
            PreferenceObservation("emotionalSignals", "satisfaction", "false"),
            PreferenceObservation("emotionalSignals", "urgency", "high"),
        ]

    def test_empty_session_yields_three_signals(self, make_session_model) -> None:
        observations = extract_observations(make_session_model())
        assert [o.key for o in observations] == ["frustration", "satisfaction", "urgency"]


class TestAggregate:
    def test_empty_model_gets_new_clusters(self, make_session_model, now) -> None:
        session = make_session_model(coding_preferences=["TypeScript"], urgency="medium")

        model = aggregate_session_into_model(UserModel.empty(), session, now=now)

        by_key = {(c.category, c.key): c for c in model.preferences_clusters}
        assert by_key[("codingPreferences", "preference")].value == "TypeScript"
        assert by_key[("emotionalSignals", "urgency")].value == "medium"
        assert by_key[("emotionalSignals", "satisfaction")].value == "true"
        assert all(c.confidence == pytest.approx(0.1) for c in model.preferences_clusters)

    def test_none_counts_as_empty(self, make_session_model, now) -> None:
        session = make_session_model(coding_preferences=["Go"])
        assert aggregate_session_into_model(None, session, now=now) == aggregate_session_into_model(
            UserModel.empty(), session, now=now
        )

    def test_duplicate_preferences_collapse(self, make_session_model, now) -> None:
        session = make_session_model(coding_preferences=["foo", "foo"])

        model = aggregate_session_into_model(UserModel.empty(), session, now=now)

        coding = [c for c in model.preferences_clusters if c.category == "codingPreferences"]
        assert len(coding) == 1
        assert coding[0].session_count == 2
        assert coding[0].confidence == pytest.approx(0.2)

    def test_decay_runs_before_reinforcement(self, make_cluster, make_session_model, now) -> None:
        current = UserModel(
            preferences_clusters=[make_cluster(value="Rust", confidence=0.8, days_ago=30)]
        )
        session = make_session_model(coding_preferences=["Rust"])

        model = aggregate_session_into_model(current, session, decay_days=30, now=now)

        rust = next(c for c in model.preferences_clusters if c.value == "Rust")
        assert rust.confidence == pytest.approx(0.5)
        assert rust.session_count == 2

    def test_conflicting_value_replaces_older(self, make_cluster, make_session_model, now) -> None:
        current = UserModel(
            preferences_clusters=[make_cluster(value="Python", confidence=0.9, days_ago=2)]
        )
        session = make_session_model(coding_preferences=["Go"])

        model = aggregate_session_into_model(current, session, now=now)

        coding = [c for c in model.preferences_clusters if c.category == "codingPreferences"]
        assert [c.value for c in coding] == ["Go"]

    def test_within_session_conflict_keeps_first_on_tie(self, make_session_model, now) -> None:
        session = make_session_model(coding_preferences=["Go", "Zig"])

        model = aggregate_session_into_model(UserModel.empty(), session, now=now)

        coding = [c for c in model.preferences_clusters if c.category == "codingPreferences"]
        assert [c.value for c in coding] == ["Go"]

    def test_summaries_and_overrides_copied(self, make_cluster, make_session_model, now) -> None:
        override = make_cluster(value="Java")
        current = UserModel(
            interaction_style_summary="terse",
            coding_style_summary="functional",
            project_overrides={"api": [override]},
        )

        model = aggregate_session_into_model(current, make_session_model(), now=now)

        assert model.interaction_style_summary == "terse"
        assert model.coding_style_summary == "functional"
        assert model.project_overrides == {"api": [override]}
        assert model.project_overrides is not current.project_overrides

    def test_input_model_not_mutated(self, make_cluster, make_session_model, now) -> None:
        cluster = make_cluster(value="Rust", confidence=0.5, days_ago=10)
        current = UserModel(preferences_clusters=[cluster])

        aggregate_session_into_model(current, make_session_model(coding_preferences=["Rust"]), now=now)

        assert current.preferences_clusters == [cluster]

    def test_stale_preferences_drop_out(self, make_cluster, make_session_model, now) -> None:
        current = UserModel(
            preferences_clusters=[make_cluster(value="Perl", confidence=0.1, days_ago=365)]
        )

        model = aggregate_session_into_model(current, make_session_model(), now=now)

        assert all(c.value != "Perl" for c in model.preferences_clusters)

    def test_reinforced_timestamp_is_cycle_time(self, make_session_model, now) -> None:
        later = now + timedelta(hours=1)
        model = aggregate_session_into_model(
            UserModel.empty(), make_session_model(coding_preferences=["x"]), now=later
        )
        assert {c.last_updated for c in model.preferences_clusters} == {later}
