"""
API tests for notification preference and mute endpoints.
"""

from server.src.models import DmSetting, GroupChatMember


class TestPreferences:

    def test_defaults_to_everything_enabled(self, test_client):
        response = test_client.get("/api/notifications/preferences/alice")

        assert response.status_code == 200
        assert response.json() == {
            "dmNotifications": True,
            "connectionNotifications": True,
            "groupNotifications": True,
            "topicNotifications": True,
        }

    def test_partial_update(self, test_client):
        response = test_client.put(
            "/api/notifications/preferences/alice",
            json={"topicNotifications": False},
        )

        assert response.status_code == 200
        assert response.json()["topicNotifications"] is False
        assert response.json()["dmNotifications"] is True

        again = test_client.get("/api/notifications/preferences/alice")
        assert again.json()["topicNotifications"] is False


class TestMute:

    def test_mute_dm_peer(self, test_client, test_db_session):
        response = test_client.put(
            "/api/notifications/mute",
            json={"userId": "alice", "kind": "dm", "contextId": "bob", "muted": True},
        )

        assert response.status_code == 200
        assert response.json()["muted"] is True
        setting = test_db_session.query(DmSetting).filter(DmSetting.user_id == "alice").one()
        assert setting.other_user_id == "bob"
        assert setting.muted is True

    def test_mute_group_member(self, test_client, create_group, test_db_session):
        group = create_group("bob", member_ids=["alice"])

        response = test_client.put(
            "/api/notifications/mute",
            json={"userId": "alice", "kind": "group", "contextId": group.id, "muted": True},
        )

        assert response.status_code == 200
        member = test_db_session.query(GroupChatMember).filter(
            GroupChatMember.group_id == group.id, GroupChatMember.user_id == "alice"
        ).one()
        test_db_session.refresh(member)
        assert member.muted is True

    def test_mute_group_not_member_404(self, test_client):
        response = test_client.put(
            "/api/notifications/mute",
            json={"userId": "alice", "kind": "group", "contextId": "nope", "muted": True},
        )

        assert response.status_code == 404

    def test_unknown_kind_rejected(self, test_client):
        response = test_client.put(
            "/api/notifications/mute",
            json={"userId": "alice", "kind": "profile", "contextId": "bob", "muted": True},
        )

        assert response.status_code == 422
