# tests/test_services.py
import uuid

from crm.api_client import APIError
from crm.dashboard.models import Callback, Feedback
from crm.dashboard.services import RETRY_MESSAGE, CRMService, new_id


# ==================== Deals ====================

def test_create_deal_posts_legacy_payload(api, manager):
    ok, message = CRMService(api, manager).create_deal({
        'customer_name': " Acme ",
        'amount': "$1,200.50",
        'sales_agent_id': "s1",
        'sales_agent_name': "Sam",
        'team': "Alpha",
        'status': "Active",
    })

    assert ok
    assert message.startswith("Deal DEAL-")
    endpoint = api.post.call_args.args[0]
    payload = api.post.call_args.kwargs['json']
    assert endpoint == '/api/sales'
    assert payload['customer_name'] == "Acme"
    assert payload['amount_paid'] == 1200.5
    assert payload['SalesAgentID'] == "s1"
    assert payload['sales_team'] == "Alpha"
    assert payload['status'] == "active"
    assert payload['signup_date'].endswith("Z")


def test_salesman_deals_are_stamped_with_own_identity(api, salesman):
    ok, _ = CRMService(api, salesman).create_deal({
        'customer_name': "Acme",
        'amount': 10,
        'sales_agent_id': "someone-else",
        'team': "Beta",
    })

    assert ok
    payload = api.post.call_args.kwargs['json']
    assert payload['SalesAgentID'] == "s1"
    assert payload['sales_agent'] == "Sam Seller"
    assert payload['sales_team'] == "Alpha"


def test_invalid_deal_never_reaches_the_network(api, manager):
    ok, message = CRMService(api, manager).create_deal({'customer_name': "", 'amount': "abc"})

    assert not ok
    assert "Customer name is required" in message
    api.post.assert_not_called()


def test_backend_failure_returns_retry_message(api, manager):
    api.post.side_effect = APIError("HTTP 503: down", status_code=503)

    ok, message = CRMService(api, manager).create_deal({
        'customer_name': "Acme", 'amount': 5, 'sales_agent_id': "s1",
    })

    assert not ok
    assert message == RETRY_MESSAGE


def test_update_deal(api, salesman, deals):
    service = CRMService(api, salesman)

    ok, _ = service.update_deal("D1", {'status': "completed"}, record=deals[0])
    assert ok
    assert api.put.call_args.kwargs['json'] == {'id': "D1", 'status': "completed"}

    ok, message = service.update_deal("D3", {'status': "completed"}, record=deals[2])
    assert not ok
    assert "cannot" in message


def test_delete_deal_permissions(api, manager, salesman, deals):
    ok, _ = CRMService(api, salesman).delete_deal("D1", record=deals[0])
    assert not ok
    api.delete.assert_not_called()

    ok, _ = CRMService(api, manager).delete_deal("D1", record=deals[0])
    assert ok
    assert api.delete.call_args.kwargs['params'] == {'id': "D1"}


# ==================== Callbacks ====================

def test_create_callback_defaults_to_pending(api, salesman):
    data = {'customer_name': "Acme", 'phone_number': "555-0101", 'notes': "after lunch"}

    ok, _ = CRMService(api, salesman).create_callback(data)

    assert ok
    assert 'status' not in data
    payload = api.post.call_args.kwargs['json']
    assert payload['callback_status'] == "pending"
    assert payload['callback_notes'] == "after lunch"
    assert payload['id'].startswith("CB-")


def test_callback_assigned_to_another_agent_keeps_callers_name_out(api, manager):
    ok, _ = CRMService(api, manager).create_callback({
        'customer_name': "Acme",
        'phone_number': "555-0101",
        'sales_agent_id': "a7",
    })

    assert ok
    payload = api.post.call_args.kwargs['json']
    assert payload['SalesAgentID'] == "a7"
    assert payload['sales_agent'] == ""
    assert payload['sales_team'] == ""


def test_callback_assigned_to_another_agent_uses_given_name_and_team(api, team_leader):
    CRMService(api, team_leader).create_callback({
        'customer_name': "Acme",
        'phone_number': "555-0101",
        'sales_agent_id': "a7",
        'sales_agent_name': "Ava Agent",
        'team': "Alpha",
    })

    payload = api.post.call_args.kwargs['json']
    assert (payload['SalesAgentID'], payload['sales_agent'], payload['sales_team']) == ("a7", "Ava Agent", "Alpha")


def test_callback_for_self_is_filled_from_caller(api, manager):
    CRMService(api, manager).create_callback({'customer_name': "Acme", 'phone_number': "555-0101"})

    payload = api.post.call_args.kwargs['json']
    assert (payload['SalesAgentID'], payload['sales_agent'], payload['sales_team']) == ("m1", "Mona Manager", "HQ")


def test_status_change_follows_workflow(api, salesman):
    service = CRMService(api, salesman)
    callback = Callback(callback_id="C1", sales_agent_id="s1", status="pending")

    ok, _ = service.update_callback_status(callback, "contacted")
    assert ok
    assert api.put.call_args.kwargs['json'] == {'id': "C1", 'callback_status': "contacted"}

    api.put.reset_mock()
    ok, message = service.update_callback_status(callback, "completed")
    assert not ok
    assert "pending" in message
    api.put.assert_not_called()


def test_same_status_is_a_no_op(api, salesman):
    callback = Callback(callback_id="C1", sales_agent_id="s1", status="contacted")

    ok, message = CRMService(api, salesman).update_callback_status(callback, "contacted")

    assert ok
    assert "already" in message
    api.put.assert_not_called()


def test_update_callback_routes_status_through_workflow(api, salesman):
    service = CRMService(api, salesman)
    callback = Callback(callback_id="C1", sales_agent_id="s1", status="completed")

    ok, _ = service.update_callback("C1", {'status': "pending"}, record=callback)
    assert not ok

    ok, _ = service.update_callback("C1", {'status': "pending"})
    assert not ok
    api.put.assert_not_called()


def test_cannot_touch_other_agents_callback(api, salesman):
    callback = Callback(callback_id="C9", sales_agent_id="s2", team="Beta", status="pending")

    ok, _ = CRMService(api, salesman).update_callback_status(callback, "contacted")

    assert not ok
    api.put.assert_not_called()


# ==================== Data center ====================

def test_create_data_entry(api, manager):
    ok, _ = CRMService(api, manager).create_data_entry({
        'title': "Q2 plan", 'description': "Targets", 'sent_to_team': "Alpha",
    })

    assert ok
    assert api.post.call_args.args[0] == '/api/data-center'
    assert api.post.call_args.kwargs['params'] == {'user_id': "m1", 'user_role': "manager"}
    payload = api.post.call_args.kwargs['json']
    assert payload['sent_to_team'] == "Alpha"
    assert payload['sent_to_id'] is None


def test_salesman_cannot_manage_entries(api, salesman):
    service = CRMService(api, salesman)

    assert not service.create_data_entry({'title': "x", 'description': "y", 'sent_to_team': "Alpha"})[0]
    assert not service.delete_data_entry("1")[0]
    api.post.assert_not_called()
    api.delete.assert_not_called()


# ==================== Feedback ====================

def test_submit_feedback(api, salesman):
    ok, _ = CRMService(api, salesman).submit_feedback("42", {'feedback_text': "Useful", 'rating': "5"})

    assert ok
    payload = api.post.call_args.kwargs['json']
    assert payload['data_id'] == "42"
    assert payload['user_id'] == "s1"
    assert payload['rating'] == 5


def test_only_author_changes_feedback(api, salesman, manager):
    mine = Feedback(id="f1", user_id="s1")
    theirs = Feedback(id="f2", user_id="s2")

    assert CRMService(api, salesman).delete_feedback(mine)[0]
    assert api.delete.call_args.kwargs['params']['feedback_id'] == "f1"

    api.delete.reset_mock()
    assert not CRMService(api, salesman).delete_feedback(theirs)[0]
    api.delete.assert_not_called()

    assert CRMService(api, manager).update_feedback(theirs, {'status': "resolved"})[0]


def test_manager_moves_feedback_status(api, manager):
    item = Feedback(id="f2", user_id="s2", status="pending")

    ok, message = CRMService(api, manager).update_feedback_status(item, "In_Progress")

    assert ok, message
    assert api.put.call_args.args[0] == '/api/data-feedback'
    assert api.put.call_args.kwargs['json'] == {'id': "f2", 'status': "in_progress"}
    assert api.put.call_args.kwargs['params']['feedback_id'] == "f2"


def test_feedback_status_rules(api, manager, team_leader):
    item = Feedback(id="f2", user_id="s2", status="resolved")

    assert CRMService(api, manager).update_feedback_status(item, "resolved") == (True, "Feedback already resolved")
    assert not CRMService(api, manager).update_feedback_status(item, "archived")[0]
    assert not CRMService(api, team_leader).update_feedback_status(item, "closed")[0]
    api.put.assert_not_called()


def test_new_id_is_uuid4():
    value = new_id("DEAL-")
    assert value.startswith("DEAL-")
    assert uuid.UUID(value[len("DEAL-"):]).version == 4


def test_delete_callback_only_own(api, salesman):
    service = CRMService(api, salesman)
    mine = Callback(callback_id="C1", sales_agent_id="s1")
    theirs = Callback(callback_id="C2", sales_agent_id="s2")

    assert not service.delete_callback("C2", record=theirs)[0]
    api.delete.assert_not_called()

    assert service.delete_callback("C1", record=mine)[0]
    assert api.delete.call_args.args[0] == '/api/callbacks'
    assert api.delete.call_args.kwargs['params'] == {'id': "C1"}
