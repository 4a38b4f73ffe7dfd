import pytest


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin")


class TestListGames:
    def test_empty(self, client):
        r = client.get("/api/games/")
        assert r.status_code == 200
        assert r.json()["data"]["data"] == []

    def test_by_slug(self, client, make_game):
        make_game("Test Game")
        r = client.get("/api/games/test-game")
        assert r.json()["data"]["name"] == "Test Game"
        assert client.get("/api/games/missing").status_code == 404


class TestCreateGame:
    def test_admin_only(self, client, make_user, auth_headers):
        r = client.post("/api/games/", json={"name": "X"}, headers=auth_headers(make_user()))
        assert r.status_code == 403

    def test_slug_suffix(self, client, admin, auth_headers):
        headers = auth_headers(admin)
        first = client.post("/api/games/", json={"name": "Test Game"}, headers=headers)
        second = client.post("/api/games/", json={"name": "Test Game"}, headers=headers)
        assert first.status_code == 201
        assert first.json()["data"]["slug"] == "test-game"
        assert second.json()["data"]["slug"] == "test-game-1"

    def test_delete_with_mods_conflicts(self, client, admin, make_game, make_mod, auth_headers):
        game = make_game()
        make_mod(game, admin)
        r = client.delete(f"/api/games/{game.id}", headers=auth_headers(admin))
        assert r.status_code == 409
        assert r.json()["error"] == "Cannot delete game with existing mods"


class TestGameRequests:
    def test_submit_and_approve(self, client, admin, make_user, auth_headers):
        r = client.post(
            "/api/games/requests",
            json={"name": "Requested", "description": "please add"},
            headers=auth_headers(make_user()),
        )
        assert r.status_code == 201
        request_id = r.json()["data"]["id"]

        listed = client.get("/api/games/requests", headers=auth_headers(admin)).json()["data"]
        assert listed["total"] == 1

        r = client.post(
            f"/api/games/requests/{request_id}/approve",
            json={"admin_notes": "ok"},
            headers=auth_headers(admin),
        )
        assert r.status_code == 200
        assert r.json()["data"]["slug"] == "requested"


class TestTagsAndModerators:
    def test_tags(self, client, admin, make_game, auth_headers):
        game = make_game()
        r = client.post(
            f"/api/games/{game.id}/tags", json={"name": "UI"}, headers=auth_headers(admin)
        )
        assert r.status_code == 201
        tags = client.get(f"/api/games/{game.id}/tags").json()["data"]
        assert [t["slug"] for t in tags] == ["ui"]

    def test_moderators(self, client, admin, make_game, make_user, auth_headers):
        game = make_game()
        user = make_user("helper")
        headers = auth_headers(admin)
        r = client.post(
            f"/api/games/{game.id}/moderators", json={"user_id": user.id}, headers=headers
        )
        assert r.status_code == 201
        mods = client.get(f"/api/games/{game.id}/moderators").json()["data"]
        assert [m["username"] for m in mods] == ["helper"]
        assert "email" not in mods[0]
        r = client.delete(f"/api/games/{game.id}/moderators/{user.id}", headers=headers)
        assert r.status_code == 200
