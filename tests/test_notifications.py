from sqlalchemy.exc import OperationalError

from skyinvest.extensions import db
from skyinvest.models import Notification
from skyinvest.services import notifications


def test_notify_skips_missing_user(app):
    assert notifications.notify(None, "share_request", "t", "m") is False
    assert Notification.query.count() == 0


def test_notify_failure_is_swallowed(app, make_user, monkeypatch, caplog):
    user = make_user("investor")

    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db.session, "commit", broken_commit)
    assert notifications.notify(user.id, "share_approved", "Approved", "ok") is False
    assert "Failed to store share_approved notification" in caplog.text


def test_read_and_mark_all(client, make_user, auth_headers):
    alice, bob = make_user("investor"), make_user("investor")
    for i in range(3):
        notifications.notify(alice.id, "share_request", f"Note {i}", "body", related_id=i)
    notifications.notify(bob.id, "share_request", "Bob's", "body")

    headers = auth_headers(alice)
    listing = client.get("/notifications", headers=headers).get_json()
    assert listing["unread"] == 3
    first_id = listing["notifications"][0]["id"]

    # someone else's notification is not found
    bob_note = Notification.query.filter_by(user_id=bob.id).one()
    assert client.put(f"/notifications/{bob_note.id}/read", headers=headers).status_code == 404

    read = client.put(f"/notifications/{first_id}/read", headers=headers)
    assert read.get_json()["notification"]["is_read"] is True
    assert client.get("/notifications?unread=1", headers=headers).get_json()["unread"] == 2

    marked = client.put("/notifications/mark-all-read", headers=headers).get_json()
    assert marked["updated"] == 2
    assert client.get("/notifications", headers=headers).get_json()["unread"] == 0
    assert client.get("/notifications", headers=auth_headers(bob)).get_json()["unread"] == 1
