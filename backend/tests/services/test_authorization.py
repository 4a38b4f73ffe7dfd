import pytest

from azurite.errors import PermissionDeniedError
from azurite.models.user import Role, UserRole
from azurite.services.authorization import (
    Capability,
    RoleGrant,
    has_permission,
    require_capability,
    user_can,
)


class TestHasPermission:
    def test_admin_can_do_everything(self):
        for capability in Capability:
            assert has_permission(Role.ADMIN, [], 1, capability)

    def test_plain_user_without_grants(self):
        assert not has_permission(Role.USER, [], 1, Capability.MODERATE_MODS)

    def test_community_moderator_main_role_moderates_any_game(self):
        assert has_permission(Role.COMMUNITY_MODERATOR, [], 42, Capability.MODERATE_MODS)
        assert not has_permission(Role.COMMUNITY_MODERATOR, [], 42, Capability.ADMINISTER)

    def test_per_game_grant_matches_only_that_game(self):
        grants = [RoleGrant(Role.COMMUNITY_MODERATOR, game_id=1)]
        assert has_permission(Role.USER, grants, 1, Capability.MODERATE_MODS)
        assert not has_permission(Role.USER, grants, 2, Capability.MODERATE_MODS)

    def test_global_grant_matches_any_game(self):
        grants = [RoleGrant(Role.WIKI_MAINTAINER)]
        assert has_permission(Role.USER, grants, 5, Capability.MANAGE_WIKI)
        assert has_permission(Role.USER, grants, 9, Capability.EDIT_DOCUMENTATION)

    def test_grant_requires_target_game(self):
        grants = [RoleGrant(Role.COMMUNITY_MODERATOR, game_id=1)]
        assert not has_permission(Role.USER, grants, None, Capability.MODERATE_MODS)

    def test_wiki_maintainer_cannot_moderate_mods(self):
        grants = [RoleGrant(Role.WIKI_MAINTAINER, game_id=1)]
        assert not has_permission(Role.USER, grants, 1, Capability.MODERATE_MODS)
        assert has_permission(Role.USER, grants, 1, Capability.MODERATE_GAME)


class TestUserCan:
    def test_loads_grants_from_store(self, session, make_user, make_game):
        user = make_user()
        game = make_game()
        assert not user_can(session, user, Capability.MODERATE_MODS, game.id)

        session.add(UserRole(user_id=user.id, game_id=game.id, role=Role.COMMUNITY_MODERATOR))
        session.commit()
        assert user_can(session, user, Capability.MODERATE_MODS, game.id)

    def test_require_capability_raises(self, session, make_user, make_game):
        user = make_user()
        with pytest.raises(PermissionDeniedError, match="Insufficient permissions"):
            require_capability(session, user, Capability.MODERATE_MODS, make_game().id)
