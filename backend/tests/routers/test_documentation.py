import pytest


@pytest.fixture
def wiki(make_user, make_game):
    return make_user("wiki", role="admin"), make_game()


class TestDocumentation:
    def test_crud(self, client, wiki, auth_headers):
        user, game = wiki
        headers = auth_headers(user)
        r = client.post(
            f"/api/games/{game.id}/docs",
            json={"title": "Install Guide", "content": "unzip it"},
            headers=headers,
        )
        assert r.status_code == 201
        doc = r.json()["data"]
        assert doc["slug"] == "install-guide"

        by_slug = client.get(f"/api/docs/by-slug/{game.slug}/install-guide").json()["data"]
        assert by_slug["id"] == doc["id"]

        found = client.get(f"/api/games/{game.id}/docs/search", params={"q": "unzip"}).json()
        assert found["data"]["total"] == 1

        r = client.put(f"/api/docs/{doc['id']}", json={"content": "extract"}, headers=headers)
        assert r.json()["data"]["content"] == "extract"
        assert client.delete(f"/api/docs/{doc['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/docs/{doc['id']}").status_code == 404

    def test_plain_user_forbidden(self, client, wiki, make_user, auth_headers):
        _, game = wiki
        r = client.post(
            f"/api/games/{game.id}/docs",
            json={"title": "T", "content": "c"},
            headers=auth_headers(make_user()),
        )
        assert r.status_code == 403
