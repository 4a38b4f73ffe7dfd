from datetime import UTC, datetime, timedelta

import pytest

from azurite.errors import BannedError, NotFoundError, ValidationError
from azurite.models.ban import Ban
from azurite.models.user import Role
from azurite.services import ban_gate


@pytest.fixture
def admin(make_user):
    return make_user("admin", role=Role.ADMIN.value)


class TestCheckRequest:
    def test_no_ban_passes(self, session):
        ban_gate.check_request(session, ip_address="10.0.0.1", user_id=None)

    def test_ip_ban(self, session, admin):
        ban_gate.create_ban(session, banned_by=admin.id, reason="spam", ip_address="10.0.0.1")
        with pytest.raises(BannedError, match="Your IP address has been banned"):
            ban_gate.check_request(session, ip_address="10.0.0.1", user_id=None)
        ban_gate.check_request(session, ip_address="10.0.0.2", user_id=None)

    def test_user_ban(self, session, admin, make_user):
        user = make_user()
        ban_gate.create_ban(session, banned_by=admin.id, reason="abuse", user_id=user.id)
        with pytest.raises(BannedError, match="Your account has been banned"):
            ban_gate.check_request(session, ip_address="10.0.0.9", user_id=user.id)

    def test_ip_ban_reported_first(self, session, admin, make_user):
        user = make_user()
        ban_gate.create_ban(session, banned_by=admin.id, reason="a", user_id=user.id)
        ban_gate.create_ban(session, banned_by=admin.id, reason="b", ip_address="1.1.1.1")
        with pytest.raises(BannedError, match="IP address"):
            ban_gate.check_request(session, ip_address="1.1.1.1", user_id=user.id)

    def test_game_scoped_ban(self, session, admin, make_user, make_game):
        user = make_user()
        game = make_game()
        other = make_game("Other")
        ban_gate.create_ban(
            session, banned_by=admin.id, reason="x", user_id=user.id, game_id=game.id
        )
        with pytest.raises(BannedError):
            ban_gate.check_request(session, ip_address=None, user_id=user.id, game_id=game.id)
        ban_gate.check_request(session, ip_address=None, user_id=user.id, game_id=other.id)
        ban_gate.check_request(session, ip_address=None, user_id=user.id, game_id=None)

    def test_game_ban_lifts_after_expiry(self, session, admin, make_user, make_game):
        user = make_user()
        game = make_game()
        ban = ban_gate.create_ban(
            session, banned_by=admin.id, reason="x", user_id=user.id, game_id=game.id
        )
        with pytest.raises(BannedError):
            ban_gate.check_request(session, ip_address=None, user_id=user.id, game_id=game.id)

        ban.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        session.add(ban)
        session.commit()
        ban_gate.check_request(session, ip_address=None, user_id=user.id, game_id=game.id)

    def test_expired_ban_is_ignored(self, session, admin):
        session.add(
            Ban(
                ip_address="2.2.2.2",
                reason="old",
                banned_by=admin.id,
                expires_at=datetime.now(UTC) - timedelta(minutes=1),
            )
        )
        session.commit()
        ban_gate.check_request(session, ip_address="2.2.2.2", user_id=None)

    def test_unbanned_passes(self, session, admin):
        ban = ban_gate.create_ban(session, banned_by=admin.id, reason="x", ip_address="3.3.3.3")
        ban_gate.unban(session, ban.id)
        ban_gate.check_request(session, ip_address="3.3.3.3", user_id=None)


class TestCreateBan:
    def test_requires_target(self, session, admin):
        with pytest.raises(ValidationError):
            ban_gate.create_ban(session, banned_by=admin.id, reason="x")

    def test_unknown_user(self, session, admin):
        with pytest.raises(NotFoundError):
            ban_gate.create_ban(session, banned_by=admin.id, reason="x", user_id=999)

    def test_duration_sets_expiry(self, session, admin):
        ban = ban_gate.create_ban(
            session, banned_by=admin.id, reason="x", ip_address="4.4.4.4", duration_days=7
        )
        expires = ban_gate._as_utc(ban.expires_at)
        assert timedelta(days=6) < expires - datetime.now(UTC) <= timedelta(days=7)

    def test_permanent_by_default(self, session, admin):
        ban = ban_gate.create_ban(session, banned_by=admin.id, reason="x", ip_address="5.5.5.5")
        assert ban.expires_at is None


class TestUnbanAndCleanup:
    def test_unban_twice(self, session, admin):
        ban = ban_gate.create_ban(session, banned_by=admin.id, reason="x", ip_address="6.6.6.6")
        ban_gate.unban(session, ban.id)
        with pytest.raises(NotFoundError, match="already inactive"):
            ban_gate.unban(session, ban.id)

    def test_cleanup_expired(self, session, admin):
        ban = ban_gate.create_ban(
            session, banned_by=admin.id, reason="x", ip_address="7.7.7.7", duration_days=1
        )
        ban_gate.create_ban(session, banned_by=admin.id, reason="y", ip_address="8.8.8.8")

        assert ban_gate.cleanup_expired_bans(session, now=datetime.now(UTC)) == 0
        swept = ban_gate.cleanup_expired_bans(session, now=datetime.now(UTC) + timedelta(days=2))
        assert swept == 1
        session.refresh(ban)
        assert not ban.is_active

        active, total = ban_gate.list_bans(session, active=True)
        assert total == 1
        assert active[0].ip_address == "8.8.8.8"
