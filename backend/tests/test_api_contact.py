"""Tests for the public contact form and the staff inquiry endpoints."""

from unittest.mock import patch

from sqlmodel import Session, select

from vanguard_desk.models.thread import Thread, ThreadMessage

FORM = {
    "name": "Carla Reyes",
    "email": "carla@example.com",
    "subject": "Quote for 20t excavator",
    "message": "Please send a quote including shipping to Valparaiso.",
    "company": "Reyes Mining",
    "inquiry_type": "Quote Request",
}


def _submit(client, headers=None, **overrides):
    with (
        patch("vanguard_desk.services.notifications.send_confirmation") as confirm,
        patch("vanguard_desk.services.notifications.send_admin_notification") as notify,
    ):
        response = client.post("/api/contact/", json={**FORM, **overrides}, headers=headers or {})
    return response, confirm, notify


def test_guest_submission_creates_seeded_thread(client, engine):
    response, confirm, notify = _submit(client, headers={"User-Agent": "pytest-browser"})
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Contact form submitted successfully"

    with Session(engine) as session:
        thread = session.get(Thread, data["contact_id"])
        assert thread.user_id is None
        assert thread.status.value == "New"
        assert thread.priority.value == "Medium"
        assert thread.inquiry_type.value == "Quote Request"
        assert thread.user_agent == "pytest-browser"
        assert thread.ip_address
        messages = session.exec(select(ThreadMessage)).all()
        assert len(messages) == 1
        assert messages[0].sender.value == "guest"
        assert messages[0].sender_user_id is None
        assert messages[0].text == FORM["message"]

    confirm.assert_called_once()
    notify.assert_called_once()
    assert confirm.call_args.args[0]["email"] == "carla@example.com"


def test_signed_in_submission_is_owned(client, engine, customer, auth):
    response, _, _ = _submit(client, headers=auth(customer))
    with Session(engine) as session:
        thread = session.get(Thread, response.json()["contact_id"])
        assert thread.user_id == customer.id
        message = session.exec(select(ThreadMessage)).one()
        assert message.sender.value == "user"
        assert message.sender_user_id == customer.id


def test_submission_always_creates_new_thread(client):
    first, _, _ = _submit(client)
    second, _, _ = _submit(client)
    assert first.json()["contact_id"] != second.json()["contact_id"]


def test_submission_validation(client):
    assert _submit(client, email="not-an-email")[0].status_code == 422
    assert _submit(client, subject="")[0].status_code == 422
    assert _submit(client, name="X")[0].status_code == 422
    assert _submit(client, message="")[0].status_code == 422
    assert _submit(client, message="   ")[0].status_code == 400


def test_mail_failure_does_not_fail_submission(client, engine):
    with patch("vanguard_desk.services.notifications.get_notifier") as get_notifier:
        get_notifier.return_value.is_configured = True
        get_notifier.return_value.send.side_effect = OSError("smtp down")
        response = client.post("/api/contact/", json=FORM)

    assert response.status_code == 200
    with Session(engine) as session:
        assert session.get(Thread, response.json()["contact_id"]) is not None


def test_back_office_requires_staff(client, customer, auth):
    assert client.get("/api/contact/").status_code == 401
    assert client.get("/api/contact/", headers=auth(customer)).status_code == 403


def test_list_paginates_and_filters(client, editor, auth):
    for i in range(5):
        _submit(client, subject=f"Inquiry {i}", name=f"Person {i}")

    response = client.get("/api/contact/", params={"limit": 2, "page": 2}, headers=auth(editor))
    assert response.status_code == 200
    data = response.json()
    assert [c["subject"] for c in data["contacts"]] == ["Inquiry 2", "Inquiry 1"]
    assert data["pagination"] == {
        "current": 2,
        "pages": 3,
        "total": 5,
        "has_next": True,
        "has_prev": True,
    }

    data = client.get("/api/contact/", params={"search": "Person 3"}, headers=auth(editor)).json()
    assert [c["subject"] for c in data["contacts"]] == ["Inquiry 3"]

    data = client.get("/api/contact/", params={"status": "Closed"}, headers=auth(editor)).json()
    assert data["contacts"] == []
    assert data["pagination"]["total"] == 0


def test_list_rejects_bad_query(client, editor, auth):
    assert client.get("/api/contact/", params={"limit": 101}, headers=auth(editor)).status_code == 422
    assert client.get("/api/contact/", params={"status": "Lost"}, headers=auth(editor)).status_code == 422


def test_detail_marks_read(client, editor, auth):
    cid = _submit(client)[0].json()["contact_id"]
    response = client.get(f"/api/contact/{cid}", headers=auth(editor))
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["assigned_user"] is None


def test_detail_not_found(client, editor, auth):
    assert client.get("/api/contact/9999", headers=auth(editor)).status_code == 404


def test_update_status_and_assign(client, editor, admin, customer, auth):
    cid = _submit(client)[0].json()["contact_id"]

    response = client.put(
        f"/api/contact/{cid}/status",
        json={"status": "In Progress", "priority": "Urgent", "assigned_to": editor.id},
        headers=auth(admin),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "In Progress"
    assert response.json()["priority"] == "Urgent"
    assert client.get(f"/api/contact/{cid}", headers=auth(admin)).json()["assigned_user"] == "erin"

    response = client.put(
        f"/api/contact/{cid}/status",
        json={"status": "Closed", "assigned_to": 9999},
        headers=auth(admin),
    )
    assert response.status_code == 400

    response = client.put(
        f"/api/contact/{cid}/status",
        json={"status": "Closed", "assigned_to": customer.id},
        headers=auth(admin),
    )
    assert response.status_code == 200
    assert client.get(f"/api/contact/{cid}", headers=auth(admin)).json()["assigned_user"] == "alice"

    response = client.put(f"/api/contact/{cid}/status", json={"status": "Lost"}, headers=auth(admin))
    assert response.status_code == 422


def test_respond_sets_status_and_sends_mail(client, editor, auth):
    cid = _submit(client)[0].json()["contact_id"]

    with patch("vanguard_desk.services.notifications.send_response") as send_response:
        response = client.put(
            f"/api/contact/{cid}/respond", json={"response": "Quote attached."}, headers=auth(editor)
        )
    assert response.status_code == 200
    send_response.assert_called_once()
    assert send_response.call_args.args[0]["response"]["message"] == "Quote attached."

    detail = client.get(f"/api/contact/{cid}", headers=auth(editor)).json()
    assert detail["status"] == "Responded"
    assert detail["response"]["responded_by"] == editor.id


def test_respond_requires_text(client, editor, auth):
    cid = _submit(client)[0].json()["contact_id"]
    response = client.put(f"/api/contact/{cid}/respond", json={"response": "  "}, headers=auth(editor))
    assert response.status_code == 400


def test_legacy_mark_read(client, editor, customer, auth):
    cid = _submit(client)[0].json()["contact_id"]
    assert client.put(f"/api/contact/{cid}/read", headers=auth(customer)).status_code == 403
    assert client.put(f"/api/contact/{cid}/read", headers=auth(editor)).status_code == 200
    threads = client.get("/api/contact/threads", headers=auth(editor)).json()
    assert threads[0]["unread_count"] == 0


def test_delete_is_admin_only(client, engine, editor, admin, auth):
    cid = _submit(client)[0].json()["contact_id"]

    assert client.delete(f"/api/contact/{cid}", headers=auth(editor)).status_code == 403
    response = client.delete(f"/api/contact/{cid}", headers=auth(admin))
    assert response.status_code == 200

    with Session(engine) as session:
        assert session.get(Thread, cid) is None
        assert session.exec(select(ThreadMessage)).all() == []

    assert client.delete(f"/api/contact/{cid}", headers=auth(admin)).status_code == 404


def test_post_and_recall_through_contact_path(client, customer, other_customer, auth):
    cid = _submit(client, headers=auth(customer))[0].json()["contact_id"]

    response = client.post(
        f"/api/contact/{cid}/messages", json={"text": "Any update?"}, headers=auth(customer)
    )
    assert response.status_code == 200
    messages = response.json()["messages"]
    assert [m["text"] for m in messages] == [FORM["message"], "Any update?"]
    mid = messages[-1]["id"]

    assert client.post(
        f"/api/contact/{cid}/messages", json={"text": "hi"}, headers=auth(other_customer)
    ).status_code == 403
    assert client.put(
        f"/api/contact/{cid}/messages/{mid}/recall", headers=auth(other_customer)
    ).status_code == 403

    response = client.put(f"/api/contact/{cid}/messages/{mid}/recall", headers=auth(customer))
    assert response.status_code == 200
    recalled = response.json()["messages"][-1]
    assert recalled["recalled"] is True
    assert recalled["text"] is None


def test_contact_path_message_validation(client, customer, auth):
    cid = _submit(client, headers=auth(customer))[0].json()["contact_id"]
    response = client.post(
        f"/api/contact/{cid}/messages", json={"type": "image", "url": " "}, headers=auth(customer)
    )
    assert response.status_code == 400
    assert client.post("/api/contact/9999/messages", json={"text": "x"}, headers=auth(customer)).status_code == 404
