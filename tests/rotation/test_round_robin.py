"""Round-robin assignment: fairness, exclusions, reset and membership changes."""

import pytest

from orderdesk.core.exceptions import NoEligibleRepError, NotFoundError, ValidationError
from orderdesk.models.representative import Representative
from orderdesk.repositories.representative_repo import rep_registry


def _next_n(assigner, n):
    return [assigner.next() for _ in range(n)]


class TestFairness:
    def test_each_rep_once_per_cycle_in_sequence_order(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")

        assert _next_n(assigner, 3) == [a, b, c]

    def test_wraps_to_first_after_full_cycle(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")

        assert _next_n(assigner, 7) == [a, b, c, a, b, c, a]

    def test_single_rep_gets_every_order(self, assigner, add_reps):
        (a,) = add_reps("Alice")

        assert _next_n(assigner, 3) == [a, a, a]

    def test_equal_sequence_positions_tie_break_on_id(self, db, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        for rep in db.query(Representative).all():
            rep.sequence_position = 1
        db.commit()

        assert _next_n(assigner, 3) == [a, b, c]

    def test_advance_count_increments_per_assignment(self, assigner, add_reps):
        add_reps("Alice", "Bob")
        before = assigner.state().advance_count

        _next_n(assigner, 5)

        assert assigner.state().advance_count == before + 5


class TestNoEligibleReps:
    def test_empty_registry_raises(self, assigner):
        with pytest.raises(NoEligibleRepError) as exc_info:
            assigner.next()
        assert exc_info.value.detail == "No active sales representatives available"

    def test_all_excluded_raises(self, assigner, add_reps):
        a, b = add_reps("Alice", "Bob")
        assigner.exclude(a)
        assigner.exclude(b)

        with pytest.raises(NoEligibleRepError):
            assigner.next()

    def test_all_inactive_raises(self, assigner, add_reps):
        (a,) = add_reps("Alice")
        assigner.deactivate(a)

        with pytest.raises(NoEligibleRepError):
            assigner.next()

    def test_failed_next_leaves_cursor_untouched(self, assigner, add_reps):
        (a,) = add_reps("Alice")
        assigner.exclude(a)
        before = assigner.state().advance_count

        with pytest.raises(NoEligibleRepError):
            assigner.next()

        assert assigner.state().advance_count == before


class TestExclusion:
    def test_excluded_rep_is_skipped(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        result = assigner.exclude(b)

        assert result.success
        assert result.message == "Bob excluded from round-robin"
        assert _next_n(assigner, 3) == [a, c, a]

    def test_excluding_twice_reports_already_excluded(self, assigner, add_reps):
        _, b = add_reps("Alice", "Bob")
        assigner.exclude(b)

        result = assigner.exclude(b)

        assert result.success
        assert "already excluded" in result.message

    def test_include_restores_original_slot(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        assigner.exclude(b)
        assert _next_n(assigner, 2) == [a, c]

        result = assigner.include(b)

        assert result.message == "Bob included in round-robin"
        assert _next_n(assigner, 3) == [a, b, c]

    def test_exclude_unknown_rep_raises_not_found(self, assigner):
        with pytest.raises(NotFoundError):
            assigner.exclude(999)

    def test_result_names_next_up_rep(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")

        result = assigner.exclude(a)

        assert result.next_rep_id == b
        assert result.next_rep_name == "Bob"


class TestSkip:
    def test_skip_passes_over_next_rep(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")

        result = assigner.skip()

        assert result.rep_id == a
        assert result.next_rep_id == b
        assert result.message == "Skipped Alice. Next up: Bob"
        assert assigner.next() == b

    def test_skip_ignores_excluded_reps(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        assigner.exclude(a)

        result = assigner.skip()

        assert result.rep_id == b
        assert assigner.next() == c

    def test_skip_with_no_reps_fails_fast(self, assigner):
        with pytest.raises(NoEligibleRepError):
            assigner.skip()

    def test_skip_with_everyone_excluded_fails_fast(self, assigner, add_reps):
        (a,) = add_reps("Alice")
        assigner.exclude(a)

        with pytest.raises(NoEligibleRepError):
            assigner.skip()


class TestReset:
    def test_reset_orders_alphabetically(self, assigner, add_reps):
        charlie, alice, bob = add_reps("Charlie", "Alice", "Bob")

        result = assigner.reset(confirm=True)

        assert result.success
        assert result.next_rep_id == alice
        assert _next_n(assigner, 3) == [alice, bob, charlie]

    def test_reset_clears_exclusions(self, assigner, add_reps):
        alice, bob = add_reps("Alice", "Bob")
        assigner.exclude(bob)

        assigner.reset(confirm=True)

        assert _next_n(assigner, 2) == [alice, bob]

    def test_reset_starts_from_first_slot(self, assigner, add_reps):
        alice, bob, carol = add_reps("Alice", "Bob", "Carol")
        _next_n(assigner, 2)

        assigner.reset(confirm=True)

        assert assigner.next() == alice

    def test_reset_requires_confirmation(self, assigner, add_reps):
        add_reps("Alice")

        with pytest.raises(ValidationError):
            assigner.reset()

    def test_reset_assigns_consecutive_positions(self, db, assigner, add_reps):
        add_reps("Zed", "Yara", "Xavier")

        assigner.reset(confirm=True)

        reps = rep_registry.list_rotation_slots(db)
        assert [rep.name for rep in reps] == ["Xavier", "Yara", "Zed"]
        assert [rep.sequence_position for rep in reps] == [1, 2, 3]


class TestMembershipChanges:
    def test_active_ordered_skips_excluded_and_inactive(self, db, assigner, add_reps):
        a, b, c, d = add_reps("Alice", "Bob", "Carol", "Dan")
        assigner.exclude(b)
        assigner.deactivate(d)

        ids = rep_registry.list_active_ordered(db)
        db.commit()

        assert ids == [a, c]

    def test_new_rep_joins_at_end(self, assigner, add_reps):
        a, b = add_reps("Alice", "Bob")
        assert assigner.next() == a

        (c,) = add_reps("Carol")

        assert _next_n(assigner, 3) == [b, c, a]

    def test_deactivated_rep_leaves_rotation(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        assert assigner.next() == a

        result = assigner.deactivate(b)

        assert "deactivated" in result.message
        assert _next_n(assigner, 3) == [c, a, c]

    def test_cursor_follows_next_survivor_when_rep_removed(self, assigner, add_reps):
        a, b, c, d = add_reps("Alice", "Bob", "Carol", "Dan")
        assert _next_n(assigner, 2) == [a, b]

        # Carol was up next
        assigner.deactivate(c)

        assert assigner.next() == d

    def test_cursor_clamped_when_active_set_shrinks(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        _next_n(assigner, 2)
        assigner.deactivate(b)
        assigner.deactivate(c)

        state = assigner.state()

        assert state.position < len(state.slots)
        assert assigner.next() == a

    def test_reactivated_rep_goes_to_end(self, db, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        assigner.deactivate(a)

        result = assigner.reactivate(a)

        assert "reactivated" in result.message
        slots = rep_registry.list_rotation_slots(db)
        assert [rep.id for rep in slots] == [b, c, a]

    def test_deactivate_unknown_rep_raises_not_found(self, assigner):
        with pytest.raises(NotFoundError):
            assigner.deactivate(42)

    def test_duplicate_email_rejected(self, assigner, add_reps):
        add_reps("Alice")

        with pytest.raises(ValidationError):
            assigner.add_representative("Alice Again", "alice@example.com")


class TestRotationState:
    def test_state_lists_slots_and_next_rep(self, assigner, add_reps):
        a, b, c = add_reps("Alice", "Bob", "Carol")
        assigner.exclude(b)
        assigner.next()

        state = assigner.state()

        assert [slot.rep_id for slot in state.slots] == [a, b, c]
        assert [slot.is_excluded for slot in state.slots] == [False, True, False]
        assert state.next_rep_id == c
        assert [slot.is_next for slot in state.slots] == [False, False, True]

    def test_state_with_nobody_eligible(self, assigner):
        state = assigner.state()

        assert state.slots == []
        assert state.next_rep_id is None
