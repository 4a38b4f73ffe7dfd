import pytest


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def game(make_game):
    return make_game()


def _create(client, headers, game_id, **extra):
    payload = {"name": "Better HUD", "version": "1.0", "game_id": game_id, **extra}
    return client.post("/api/mods/", json=payload, headers=headers)


class TestCreateMod:
    def test_pending_until_scanned(self, client, owner, game, auth_headers, scan_engine):
        r = _create(client, auth_headers(owner), game.id, tags=["UI"])
        assert r.status_code == 201
        data = r.json()["data"]
        assert data["slug"] == "better-hud"
        assert data["scan_result"] == "pending"
        assert [t["slug"] for t in data["tags"]] == ["ui"]

        assert client.get("/api/mods/").json()["data"]["total"] == 0
        scan_engine.deliver_all()
        listing = client.get("/api/mods/").json()["data"]
        assert [m["name"] for m in listing["data"]] == ["Better HUD"]

    def test_requires_auth(self, client, game):
        r = client.post("/api/mods/", json={"name": "X", "version": "1", "game_id": game.id})
        assert r.status_code == 401

    def test_unknown_game(self, client, owner, auth_headers):
        assert _create(client, auth_headers(owner), 999).status_code == 404


class TestListing:
    def test_filters_and_paging(self, client, owner, game, make_mod):
        for name in ("Alpha", "Beta", "Gamma"):
            make_mod(game, owner, name=name)
        r = client.get("/api/mods/", params={"sort": "name", "order": "asc", "per_page": 2})
        body = r.json()["data"]
        assert [m["name"] for m in body["data"]] == ["Alpha", "Beta"]
        assert body["total"] == 3
        assert body["total_pages"] == 2

    def test_invalid_sort(self, client):
        assert client.get("/api/mods/", params={"sort": "bogus"}).status_code == 400

    def test_search(self, client, owner, game, make_mod):
        make_mod(game, owner, name="Weather Overhaul")
        make_mod(game, owner, name="Other")
        r = client.get("/api/mods/search", params={"q": "weather"})
        assert [m["name"] for m in r.json()["data"]["data"]] == ["Weather Overhaul"]

    def test_game_listing_by_slug(self, client, owner, game, make_game, make_mod):
        make_mod(game, owner, name="Mine")
        make_mod(make_game("Elsewhere"), owner, name="Theirs")
        r = client.get(f"/api/games/{game.slug}/mods")
        assert [m["name"] for m in r.json()["data"]["data"]] == ["Mine"]

    def test_pending_requires_moderator(self, client, owner, auth_headers):
        assert client.get("/api/mods/pending", headers=auth_headers(owner)).status_code == 403


class TestGetMod:
    def test_by_id_and_slug(self, client, owner, game, make_mod):
        mod = make_mod(game, owner, name="Thing")
        assert client.get(f"/api/mods/{mod.id}").json()["data"]["name"] == "Thing"
        r = client.get(f"/api/mods/by-slug/{game.slug}/thing")
        assert r.json()["data"]["id"] == mod.id

    def test_missing(self, client):
        r = client.get("/api/mods/999")
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "Mod not found"}


class TestUpdateAndDelete:
    def test_non_owner_forbidden(self, client, owner, game, make_mod, make_user, auth_headers):
        mod = make_mod(game, owner)
        headers = auth_headers(make_user())
        r = client.put(f"/api/mods/{mod.id}", json={"name": "X"}, headers=headers)
        assert r.status_code == 403
        assert client.delete(f"/api/mods/{mod.id}", headers=headers).status_code == 403

    def test_owner_update_and_delete(self, client, owner, game, make_mod, auth_headers):
        mod = make_mod(game, owner)
        headers = auth_headers(owner)
        r = client.put(f"/api/mods/{mod.id}", json={"version": "2.0"}, headers=headers)
        assert r.json()["data"]["version"] == "2.0"
        assert client.delete(f"/api/mods/{mod.id}", headers=headers).status_code == 200
        assert client.get(f"/api/mods/{mod.id}").status_code == 404


class TestFiles:
    def test_upload_then_download(self, client, owner, game, make_mod, auth_headers, scan_engine):
        mod = make_mod(game, owner)
        r = client.post(
            f"/api/mods/{mod.id}/files",
            files={"file": ("pack.zip", b"zipbytes", "application/zip")},
            data={"is_main": "true"},
            headers=auth_headers(owner),
        )
        assert r.status_code == 201
        data = r.json()["data"]
        assert data["is_main"] is True
        assert "file_path" not in data
        assert scan_engine.submitted == [(mod.id, data["id"])]

        dl = client.get(f"/api/mods/{mod.id}/download")
        assert dl.status_code == 200
        assert dl.content == b"zipbytes"
        assert "pack.zip" in dl.headers["content-disposition"]
        assert client.get(f"/api/mods/{mod.id}").json()["data"]["downloads"] == 1

    def test_disallowed_type(self, client, owner, game, make_mod, auth_headers):
        mod = make_mod(game, owner)
        r = client.post(
            f"/api/mods/{mod.id}/files",
            files={"file": ("run.sh", b"#!/bin/sh", "text/plain")},
            headers=auth_headers(owner),
        )
        assert r.status_code == 400
        assert r.json()["error"] == "File type not allowed"

    def test_duplicate_filename(self, client, owner, game, make_mod, auth_headers):
        mod = make_mod(game, owner)
        for expected in (201, 409):
            r = client.post(
                f"/api/mods/{mod.id}/files",
                files={"file": ("pack.zip", b"zipbytes", "application/zip")},
                headers=auth_headers(owner),
            )
            assert r.status_code == expected
        assert r.json()["error"] == "A file with this name already exists"

    def test_download_without_files(self, client, owner, game, make_mod):
        mod = make_mod(game, owner)
        r = client.get(f"/api/mods/{mod.id}/download")
        assert r.status_code == 404
        assert r.json()["error"] == "No files available for this mod"


class TestLikes:
    def test_like_twice_conflicts(self, client, owner, game, make_mod, auth_headers):
        mod = make_mod(game, owner)
        headers = auth_headers(owner)
        assert client.post(f"/api/mods/{mod.id}/like", headers=headers).status_code == 200
        assert client.post(f"/api/mods/{mod.id}/like", headers=headers).status_code == 409
        assert client.get(f"/api/mods/{mod.id}", headers=headers).json()["data"]["is_liked"]
        assert client.delete(f"/api/mods/{mod.id}/like", headers=headers).status_code == 200
        assert client.delete(f"/api/mods/{mod.id}/like", headers=headers).status_code == 404


class TestModeration:
    def test_moderator_rejects(self, client, owner, game, make_mod, make_user, auth_headers):
        mod = make_mod(game, owner)
        moderator = make_user(role="community_moderator")
        r = client.post(
            f"/api/mods/{mod.id}/reject",
            json={"reason": "Broken"},
            headers=auth_headers(moderator),
        )
        assert r.status_code == 200
        assert r.json()["data"]["rejection_reason"] == "Broken"
        assert client.get("/api/mods/").json()["data"]["total"] == 0

        r = client.post(f"/api/mods/{mod.id}/approve", headers=auth_headers(moderator))
        assert r.json()["data"]["is_rejected"] is False

    def test_owner_cannot_reject(self, client, owner, game, make_mod, auth_headers):
        mod = make_mod(game, owner)
        r = client.post(
            f"/api/mods/{mod.id}/reject", json={"reason": "x"}, headers=auth_headers(owner)
        )
        assert r.status_code == 403
