"""Tests for the allocation ledger."""
from datetime import timedelta
from decimal import Decimal

from conftest import TODAY, TWO_WEEKS, allocated, make_item, make_member, make_team, team_allocation, work_allocation
from roadmap.engine.ledger import roster_percent
from roadmap.schemas.allocation import RosterEntry, Team


def assert_projections_agree(team, item):
    for ta in item.team_allocations:
        assert ta.team_id == team.id
        for member in ta.allocated_members:
            entry = team.entry(member.member_id)
            wa = entry.work_allocation(item.id)
            assert wa.total_hours == member.hours
            assert (wa.start_date, wa.end_date) == (member.start_date, member.end_date)
    for entry in team.roster:
        for wa in entry.work_allocations:
            if wa.work_item_id == item.id:
                assert item.team_allocation(team.id).member(entry.member_id).hours == wa.total_hours


class TestRequestAllocation:
    def test_forty_hours_over_two_weeks(self, ledger):
        team, item = make_team(), make_item()
        members = {"m1": make_member(daily_rate=Decimal(400))}

        update = ledger.request_allocation(team, item, members, Decimal(40), ["m1"])

        assert update.changed
        alloc = update.allocations[0]
        assert alloc.working_days == 10
        assert alloc.percentage == Decimal(50)
        assert alloc.cost == Decimal("2000.00")
        entry = update.team.entry("m1")
        assert entry.allocation_percent == Decimal(50)
        assert entry.work_allocation("f1").weekly_hours == Decimal("18.67")
        ta = update.work_item.team_allocation("t1")
        assert ta.requested_hours == Decimal(40)
        assert ta.member("m1").cost == Decimal("2000.00")
        assert_projections_agree(update.team, update.work_item)

    def test_inputs_are_not_mutated(self, ledger):
        team, item = make_team(), make_item()
        ledger.request_allocation(team, item, {"m1": make_member()}, Decimal(40), ["m1"])
        assert team.entry("m1").work_allocations == []
        assert item.team_allocations == []

    def test_even_split(self, ledger):
        team, item = make_team(member_ids=("m1", "m2")), make_item()
        members = {"m1": make_member("m1"), "m2": make_member("m2")}
        update = ledger.request_allocation(team, item, members, Decimal(30), ["m1", "m2"])
        ta = update.work_item.team_allocation("t1")
        assert [m.hours for m in ta.allocated_members] == [Decimal(15), Decimal(15)]
        assert ta.requested_hours == Decimal(30)
        assert_projections_agree(update.team, update.work_item)

    def test_preserves_members_outside_the_call(self, ledger):
        team, item = make_team(member_ids=("m1", "m2")), make_item()
        members = {"m1": make_member("m1"), "m2": make_member("m2")}
        first = ledger.request_allocation(team, item, members, Decimal(10), ["m1"])
        second = ledger.request_allocation(first.team, first.work_item, members, Decimal(20), ["m2"])
        ta = second.work_item.team_allocation("t1")
        assert {m.member_id: m.hours for m in ta.allocated_members} == {"m1": Decimal(10), "m2": Decimal(20)}
        assert ta.requested_hours == Decimal(30)

    def test_clamps_into_remaining_headroom(self, ledger):
        team = make_team()
        team.roster[0].work_allocations.append(work_allocation("other", 80))
        update = ledger.request_allocation(team, make_item(), {"m1": make_member()}, Decimal(40), ["m1"])
        entry = update.team.entry("m1")
        assert entry.work_allocation("f1").percent_of_daily_capacity == Decimal(20)
        assert entry.allocation_percent == Decimal(100)
        assert sum(a.percent_of_daily_capacity for a in entry.work_allocations) <= 100
        # Hours are kept as requested
        assert update.work_item.team_allocation("t1").member("m1").hours == Decimal(40)

    def test_reallocating_same_item_does_not_count_itself(self, ledger):
        team, item = make_team(), make_item()
        members = {"m1": make_member()}
        first = ledger.request_allocation(team, item, members, Decimal(64), ["m1"])
        second = ledger.request_allocation(first.team, first.work_item, members, Decimal(40), ["m1"])
        assert second.team.entry("m1").allocation_percent == Decimal(50)

    def test_empty_member_ids_is_noop(self, ledger):
        team, item = make_team(), make_item()
        update = ledger.request_allocation(team, item, {}, Decimal(40), [])
        assert not update.changed
        assert update.team is team and update.work_item is item

    def test_missing_member_is_skipped(self, ledger):
        team, item = make_team(), make_item()
        update = ledger.request_allocation(team, item, {"m1": make_member()}, Decimal(40), ["m1", "ghost"])
        assert update.skipped == ["ghost"]
        assert [m.member_id for m in update.work_item.team_allocation("t1").allocated_members] == ["m1"]

    def test_member_off_roster_is_skipped(self, ledger):
        team, item = make_team(member_ids=()), make_item()
        update = ledger.request_allocation(team, item, {"m1": make_member()}, Decimal(40), ["m1"])
        assert not update.changed
        assert update.skipped == ["m1"]

    def test_default_dates_from_duration(self, ledger):
        item = make_item(start_date=None, end_date=None, duration=5)
        update = ledger.request_allocation(make_team(), item, {"m1": make_member()}, Decimal(8), ["m1"])
        wa = update.team.entry("m1").work_allocation("f1")
        assert wa.start_date == TODAY
        assert (wa.end_date - wa.start_date).days == 7


class TestUpdateAndRemove:
    def test_update_member_hours(self, ledger):
        team, item = make_team(), make_item()
        member = make_member()
        first = ledger.request_allocation(team, item, {"m1": member}, Decimal(40), ["m1"])
        update = ledger.update_member_allocation(first.team, first.work_item, member, Decimal(20))
        assert update.team.entry("m1").allocation_percent == Decimal(25)
        assert update.work_item.team_allocation("t1").requested_hours == Decimal(20)
        assert_projections_agree(update.team, update.work_item)

    def test_zero_hours_keeps_team_allocation(self, ledger):
        team, item = make_team(), make_item()
        member = make_member()
        first = ledger.request_allocation(team, item, {"m1": member}, Decimal(40), ["m1"])
        update = ledger.update_member_allocation(first.team, first.work_item, member, Decimal(0))
        assert update.work_item.team_allocation("t1").member("m1").hours == 0

    def test_team_range_spans_members_outside_the_call(self, ledger):
        team, item = make_team(member_ids=("m1", "m2")), make_item()
        first = ledger.update_member_allocation(
            team, item, make_member("m1"), Decimal(10), TODAY, TODAY + timedelta(days=4)
        )
        update = ledger.update_member_allocation(
            first.team, first.work_item, make_member("m2"), Decimal(10), TODAY + timedelta(days=7), TWO_WEEKS
        )
        ta = update.work_item.team_allocation("t1")
        assert (ta.start_date, ta.end_date) == (TODAY, TWO_WEEKS)

    def test_unmodelled_keys_survive_update(self, ledger):
        team = Team(id="t1", roster=[RosterEntry(member_id="m1", start_date=TODAY, colour="teal")])
        item = make_item(team_allocations=[team_allocation("t1", allocated("m1", 10, avatar="a.png"))])

        update = ledger.update_member_allocation(team, item, make_member(), Decimal(20))

        assert update.team.entry("m1").model_extra == {"colour": "teal"}
        member = update.work_item.team_allocation("t1").member("m1")
        assert member.hours == Decimal(20)
        assert member.model_extra == {"avatar": "a.png"}
        dumped = update.team.model_dump(mode="json", by_alias=True)
        assert dumped["roster"][0]["colour"] == "teal"

    def test_update_missing_member_is_noop(self, ledger):
        team, item = make_team(), make_item()
        assert not ledger.update_member_allocation(team, item, None, Decimal(8)).changed

    def test_remove_zeroes_roster_contribution(self, ledger):
        team, item = make_team(), make_item()
        first = ledger.request_allocation(team, item, {"m1": make_member()}, Decimal(40), ["m1"])
        update = ledger.remove_member_allocation(first.team, first.work_item, "m1")
        assert update.changed
        entry = update.team.entry("m1")
        assert entry.work_allocations == []
        assert entry.allocation_percent == 0
        assert update.work_item.team_allocations == []

    def test_remove_one_of_two(self, ledger):
        team, item = make_team(member_ids=("m1", "m2")), make_item()
        members = {"m1": make_member("m1"), "m2": make_member("m2")}
        first = ledger.request_allocation(team, item, members, Decimal(30), ["m1", "m2"])
        update = ledger.remove_member_allocation(first.team, first.work_item, "m1")
        ta = update.work_item.team_allocation("t1")
        assert [m.member_id for m in ta.allocated_members] == ["m2"]
        assert ta.requested_hours == Decimal(15)

    def test_remove_unknown_member_is_unchanged(self, ledger):
        assert not ledger.remove_member_allocation(make_team(), make_item(), "m1").changed


class TestRosterMembership:
    def test_connect_adds_zero_allocation_entry(self, ledger):
        team = ledger.connect_member(make_team(member_ids=()), "m1", role="dev")
        entry = team.entry("m1")
        assert entry.allocation_percent == 0
        assert entry.role == "dev"
        assert entry.start_date == TODAY

    def test_connect_existing_member_is_unchanged(self, ledger):
        team = make_team()
        assert ledger.connect_member(team, "m1") is team

    def test_disconnect_cascades_to_work_items(self, ledger):
        team, item = make_team(member_ids=("m1", "m2")), make_item()
        members = {"m1": make_member("m1"), "m2": make_member("m2")}
        first = ledger.request_allocation(team, item, members, Decimal(30), ["m1", "m2"])
        untouched = make_item("f2")
        new_team, changed = ledger.disconnect_member(first.team, "m1", [first.work_item, untouched])
        assert new_team.entry("m1") is None
        assert [w.id for w in changed] == ["f1"]
        assert changed[0].team_allocation("t1").member("m1") is None
        assert_projections_agree(new_team, changed[0])


def test_rederive_work_item_from_roster(ledger):
    team = make_team()
    team.roster[0].work_allocations.append(work_allocation("f1", 50, hours=40, end=TWO_WEEKS))
    stale = make_item(team_allocations=[team_allocation("t1", allocated("m1", 5))])
    rebuilt = ledger.rederive_work_item(team, stale, {"m1": make_member(daily_rate=Decimal(400))})
    member = rebuilt.team_allocation("t1").member("m1")
    assert member.hours == Decimal(40)
    assert member.cost == Decimal("2000.00")
    assert rebuilt.team_allocation("t1").requested_hours == Decimal(40)
    assert_projections_agree(team, rebuilt)


def test_roster_percent_caps_at_hundred():
    team = make_team()
    entry = team.roster[0]
    entry.work_allocations = [work_allocation("a", 70), work_allocation("b", 60)]
    assert roster_percent(entry) == Decimal(100)
