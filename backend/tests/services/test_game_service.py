import pytest
from sqlmodel import select

from azurite.errors import ConflictError, NotFoundError
from azurite.models.game import Game, GameRequestStatus
from azurite.models.notification import Notification
from azurite.models.user import Role
from azurite.schemas.game import GameCreate, GameRequestCreate
from azurite.services import game_service


class TestGames:
    def test_list_active_by_name(self, session, make_game):
        make_game("Zeta")
        make_game("Alpha")
        make_game("Hidden", is_active=False)
        games, total = game_service.list_games(session, 1, 20)
        assert [g.name for g in games] == ["Alpha", "Zeta"]
        assert total == 2

    def test_delete_refused_with_mods(self, session, make_game, make_user, make_mod):
        game = make_game()
        make_mod(game, make_user())
        with pytest.raises(ConflictError, match="existing mods"):
            game_service.delete_game(session, game.id)

    def test_delete_deactivates(self, session, make_game):
        game = make_game()
        game_service.delete_game(session, game.id)
        session.refresh(game)
        assert not game.is_active

    def test_lookup_by_slug(self, session):
        created = game_service.create_game(session, GameCreate(name="Star Field!"))
        assert game_service.get_game_by_slug(session, "star-field").id == created.id
        with pytest.raises(NotFoundError):
            game_service.get_game_by_slug(session, "nope")


class TestTags:
    def test_create_and_conflict(self, session, make_game):
        game = make_game()
        tag = game_service.create_tag(session, game.id, "Quality of Life")
        assert tag.slug == "quality-of-life"
        with pytest.raises(ConflictError):
            game_service.create_tag(session, game.id, "quality of life")

    def test_delete_in_use(self, session, make_game, make_user, make_mod):
        from azurite.schemas.mod import ModUpdate
        from azurite.services import mod_service

        game = make_game()
        owner = make_user()
        mod = make_mod(game, owner)
        mod_service.update_mod(session, mod.id, ModUpdate(tags=["ui"]), owner.id)
        tag = game_service.list_tags(session, game.id)[0]
        with pytest.raises(ConflictError, match="in use"):
            game_service.delete_tag(session, tag.id)


class TestGameRequests:
    def test_request_notifies_admins(self, session, make_user):
        admin = make_user("admin", role=Role.ADMIN.value)
        requester = make_user()
        request = game_service.create_request(
            session, GameRequestCreate(name="New Game", description="please"), requester
        )
        assert request.status == GameRequestStatus.PENDING
        notes = session.exec(select(Notification).where(Notification.user_id == admin.id)).all()
        assert len(notes) == 1

    def test_approve_creates_game(self, session, make_user):
        request = game_service.create_request(
            session, GameRequestCreate(name="New Game", description="d"), make_user()
        )
        game = game_service.approve_request(session, request.id, "welcome")
        assert game.slug == "new-game"
        session.refresh(request)
        assert request.status == GameRequestStatus.APPROVED
        assert request.admin_notes == "welcome"

        with pytest.raises(ConflictError, match="not pending"):
            game_service.deny_request(session, request.id)

    def test_deny_keeps_default_notes(self, session, make_user):
        request = game_service.create_request(
            session, GameRequestCreate(name="Nope", description="d"), make_user()
        )
        denied = game_service.deny_request(session, request.id)
        assert denied.status == GameRequestStatus.DENIED
        assert denied.admin_notes == "No admin notes at this time"
        assert session.exec(select(Game).where(Game.name == "Nope")).first() is None


class TestModerators:
    def test_assign_list_remove(self, session, make_game, make_user):
        game = make_game()
        user = make_user("mod")
        game_service.assign_moderator(session, game.id, user.id)
        with pytest.raises(ConflictError):
            game_service.assign_moderator(session, game.id, user.id)
        assert [u.username for u in game_service.list_moderators(session, game.id)] == ["mod"]

        game_service.remove_moderator(session, game.id, user.id)
        with pytest.raises(NotFoundError, match="Moderator not found"):
            game_service.remove_moderator(session, game.id, user.id)
