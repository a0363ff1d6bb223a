# tests/test_access_control.py
from crm.dashboard.access_control import AccessControl, filter_visible, filter_visible_entries, is_owned_by
from crm.dashboard.models import DataCenterEntry, Deal, Identity


class TestFilterVisible:

    def test_manager_sees_everything_in_order(self, deals, manager):
        visible = filter_visible(deals, 'manager', manager)
        assert visible == deals

    def test_salesman_sees_own_and_closing_deals(self, deals, salesman):
        visible = filter_visible(deals, 'salesman', salesman)

        assert [d.deal_id for d in visible] == ["D1", "D2"]
        assert all(is_owned_by(d, salesman.id) for d in visible)

    def test_salesman_result_is_subset(self, deals, callbacks, salesman):
        for records in (deals, callbacks):
            visible = filter_visible(records, 'salesman', salesman)
            assert all(r in records for r in visible)

    def test_team_leader_sees_own_plus_managed_team(self, deals, team_leader):
        extra = Deal(deal_id="D5", sales_agent_id="t1", team="Beta", amount=10)
        visible = filter_visible(deals + [extra], 'team_leader', team_leader)

        assert [d.deal_id for d in visible] == ["D1", "D3", "D5"]

    def test_team_leader_without_managed_team_sees_only_own(self, deals):
        leader = Identity(id="t9", role="team_leader", team="Alpha")
        assert filter_visible(deals, 'team_leader', leader) == []

    def test_missing_identity_or_unknown_role_sees_nothing(self, deals):
        assert filter_visible(deals, 'salesman', None) == []
        assert filter_visible(deals, 'salesman', Identity(id="")) == []
        assert filter_visible(deals, 'intern', Identity(id="s1")) == []

    def test_works_on_raw_dicts(self, salesman):
        rows = [{'sales_agent_id': "s1"}, {'sales_agent_id': "s2"}, {'closing_agent_id': "s1"}]
        assert len(filter_visible(rows, 'salesman', salesman)) == 2


class TestDataCenterVisibility:

    def test_entries_addressed_to_user_team_or_everyone(self, salesman):
        entries = [
            DataCenterEntry(id="1", sent_to_id="s1"),
            DataCenterEntry(id="2", sent_to_team="Alpha"),
            DataCenterEntry(id="3", sent_to_team="Beta"),
            DataCenterEntry(id="4"),
            DataCenterEntry(id="5", sent_to_id="s2"),
        ]
        visible = filter_visible_entries(entries, salesman)
        assert [e.id for e in visible] == ["1", "2", "4"]

    def test_manager_sees_all_entries(self, manager):
        entries = [DataCenterEntry(id="1", sent_to_id="s1"), DataCenterEntry(id="2", sent_to_team="Beta")]
        assert filter_visible_entries(entries, manager) == entries


class TestAccessControl:

    def test_access_levels(self, manager, team_leader, salesman):
        assert AccessControl(manager).get_access_level() == 'full'
        assert AccessControl(team_leader).get_access_level() == 'team'
        assert AccessControl(salesman).get_access_level() == 'self'
        assert AccessControl(Identity(id="x", role="guest")).get_access_level() == 'none'

    def test_permission_matrix(self, manager, salesman):
        assert AccessControl(manager).can('can_export')
        assert not AccessControl(salesman).can('can_export')
        assert not AccessControl(salesman).can('no_such_permission')

    def test_row_level_edit_and_delete(self, deals, team_leader, salesman):
        leader = AccessControl(team_leader)
        seller = AccessControl(salesman)

        # D3 belongs to someone else on the leader's team
        assert leader.can_edit(deals[2])
        assert not leader.can_delete(deals[2])
        assert seller.can_delete(deals[1])
        assert not seller.can_edit(deals[2])

    def test_labels(self, team_leader, salesman):
        assert "Alpha" in AccessControl(team_leader).get_access_label()
        assert AccessControl(salesman).get_access_label() == "👤 Personal Access"
        assert "salesman" in AccessControl(salesman).get_denied_message("export")
