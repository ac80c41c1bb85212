"""HTTP-level tests for the game, candidate and vote routes.

Covers:
- Health check and game creation/listing/lookup
- App lifespan starts the turn closer and awaits it on shutdown
- Bearer auth on proposal and voting routes
- Domain errors mapped to 400/404/409
- Full turn through the API: propose, vote, advance, history
"""

import asyncio

from httpx import AsyncClient

from app import main


# ---- helpers ----------------------------------------------------------------

async def create_game(client: AsyncClient, ai_side: str = "white") -> dict:
    resp = await client.post("/games", json={"ai_side": ai_side})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def propose(client: AsyncClient, game_id: str, position: str, headers: dict) -> dict:
    resp = await client.post(
        f"/games/{game_id}/candidates",
        json={"position": position, "description": f"play {position}"},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---- health -----------------------------------------------------------------

class TestHealth:
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestLifespan:
    async def test_closer_awaited_on_shutdown(self, monkeypatch):
        started = asyncio.Event()

        async def idle_loop(session_factory, interval_seconds):
            started.set()
            await asyncio.Event().wait()

        monkeypatch.setattr(main, "closer_loop", idle_loop)
        monkeypatch.setattr(main.settings, "turn_closer_interval_seconds", 1)
        async with main.lifespan(main.app):
            await started.wait()
            closer = main.app.state.turn_closer
            assert not closer.done()
        assert closer.cancelled()

    async def test_no_closer_when_disabled(self, monkeypatch):
        monkeypatch.setattr(main.settings, "turn_closer_interval_seconds", 0)
        async with main.lifespan(main.app):
            assert main.app.state.turn_closer is None


# ---- games ------------------------------------------------------------------

class TestGames:
    async def test_create_game(self, db_client: AsyncClient):
        game = await create_game(db_client, "white")
        assert game["status"] == "active"
        assert game["ai_side"] == "white"
        assert game["current_turn"] == 0
        assert game["side_to_move"] == "black"
        assert game["winner"] is None
        assert game["score"] == {"black": 2, "white": 2}
        assert game["board_state"][3][3] == 2
        assert game["board_state"][3][4] == 1

    async def test_create_game_invalid_side(self, db_client: AsyncClient):
        resp = await db_client.post("/games", json={"ai_side": "green"})
        assert resp.status_code == 422

    async def test_get_game(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.get(f"/games/{game['id']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == game["id"]

    async def test_get_unknown_game(self, db_client: AsyncClient):
        resp = await db_client.get("/games/nope")
        assert resp.status_code == 404

    async def test_list_games_paginated(self, db_client: AsyncClient):
        ids = [(await create_game(db_client))["id"] for _ in range(3)]

        first = (await db_client.get("/games", params={"limit": 2})).json()
        assert [g["id"] for g in first["games"]] == [ids[2], ids[1]]
        assert first["next_cursor"]

        second = (
            await db_client.get("/games", params={"limit": 2, "cursor": first["next_cursor"]})
        ).json()
        assert [g["id"] for g in second["games"]] == [ids[0]]
        assert second["next_cursor"] is None

    async def test_list_games_bad_cursor(self, db_client: AsyncClient):
        resp = await db_client.get("/games", params={"cursor": "%%%"})
        assert resp.status_code == 400

    async def test_list_finished_games_empty(self, db_client: AsyncClient):
        await create_game(db_client)
        resp = await db_client.get("/games", params={"status": "finished"})
        assert resp.status_code == 200
        assert resp.json()["games"] == []

    async def test_legal_moves(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.get(f"/games/{game['id']}/legal-moves")
        assert resp.status_code == 200
        data = resp.json()
        assert data["side"] == "black"
        assert data["positions"] == ["D3", "C4", "F5", "E6"]

    async def test_check_finish_on_playable_game(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.post(f"/games/{game['id']}/check-finish")
        assert resp.status_code == 200
        assert resp.json() == {"game_id": game["id"], "finished": False, "winner": None}


# ---- candidates -------------------------------------------------------------

class TestCandidates:
    async def test_propose_requires_auth(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.post(f"/games/{game['id']}/candidates", json={"position": "D3"})
        assert resp.status_code == 401

    async def test_propose_with_bad_token(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.post(
            f"/games/{game['id']}/candidates",
            json={"position": "D3"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 401

    async def test_propose_and_list(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        candidate = await propose(db_client, game["id"], "d3", auth_headers("alice"))
        assert candidate["position"] == "D3"
        assert candidate["user_id"] == "alice"
        assert candidate["status"] == "voting"

        resp = await db_client.get(f"/games/{game['id']}/candidates")
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == [candidate["id"]]

    async def test_illegal_move_is_400(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        resp = await db_client.post(
            f"/games/{game['id']}/candidates",
            json={"position": "A1"},
            headers=auth_headers(),
        )
        assert resp.status_code == 400

    async def test_duplicate_is_409(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        await propose(db_client, game["id"], "D3", auth_headers("alice"))
        resp = await db_client.post(
            f"/games/{game['id']}/candidates",
            json={"position": "D3"},
            headers=auth_headers("bob"),
        )
        assert resp.status_code == 409

    async def test_description_too_long(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        resp = await db_client.post(
            f"/games/{game['id']}/candidates",
            json={"position": "D3", "description": "x" * 201},
            headers=auth_headers(),
        )
        assert resp.status_code == 422

    async def test_unknown_game_is_404(self, db_client: AsyncClient, auth_headers):
        resp = await db_client.post(
            "/games/missing/candidates", json={"position": "D3"}, headers=auth_headers()
        )
        assert resp.status_code == 404

    async def test_ai_seeding(self, db_client: AsyncClient):
        game = await create_game(db_client)
        resp = await db_client.post(f"/games/{game['id']}/candidates/ai", json={"count": 2})
        assert resp.status_code == 201
        data = resp.json()
        assert [c["position"] for c in data] == ["D3", "C4"]
        assert all(c["created_by"] == "ai" for c in data)


# ---- votes ------------------------------------------------------------------

class TestVotes:
    async def test_vote_requires_auth(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        candidate = await propose(db_client, game["id"], "D3", auth_headers("alice"))
        resp = await db_client.post(
            f"/games/{game['id']}/votes", json={"candidate_id": candidate["id"]}
        )
        assert resp.status_code == 401

    async def test_cast_and_change_vote(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        d3 = await propose(db_client, game["id"], "D3", auth_headers("alice"))
        c4 = await propose(db_client, game["id"], "C4", auth_headers("alice"))
        bob = auth_headers("bob")

        resp = await db_client.post(
            f"/games/{game['id']}/votes", json={"candidate_id": d3["id"]}, headers=bob
        )
        assert resp.status_code == 200
        resp = await db_client.post(
            f"/games/{game['id']}/votes", json={"candidate_id": c4["id"]}, headers=bob
        )
        assert resp.status_code == 200

        mine = await db_client.get(f"/games/{game['id']}/votes/me", headers=bob)
        assert mine.status_code == 200
        assert mine.json()["candidate_id"] == c4["id"]

        counts = {
            c["position"]: c["vote_count"]
            for c in (await db_client.get(f"/games/{game['id']}/candidates")).json()
        }
        assert counts == {"D3": 0, "C4": 1}

    async def test_no_vote_yet(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        resp = await db_client.get(f"/games/{game['id']}/votes/me", headers=auth_headers())
        assert resp.status_code == 404

    async def test_unknown_candidate_is_404(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        resp = await db_client.post(
            f"/games/{game['id']}/votes",
            json={"candidate_id": "missing"},
            headers=auth_headers(),
        )
        assert resp.status_code == 404


# ---- turn flow --------------------------------------------------------------

class TestAdvance:
    async def test_full_turn(self, db_client: AsyncClient, auth_headers):
        game = await create_game(db_client)
        game_id = game["id"]
        d3 = await propose(db_client, game_id, "D3", auth_headers("alice"))
        c4 = await propose(db_client, game_id, "C4", auth_headers("bob"))
        for voter in ("u1", "u2"):
            await db_client.post(
                f"/games/{game_id}/votes",
                json={"candidate_id": c4["id"]},
                headers=auth_headers(voter),
            )
        await db_client.post(
            f"/games/{game_id}/votes", json={"candidate_id": d3["id"]}, headers=auth_headers("u3")
        )

        resp = await db_client.post(f"/games/{game_id}/advance")
        assert resp.status_code == 200
        data = resp.json()
        assert data["resolved"] is True
        assert data["result"]["position"] == "C4"
        assert data["result"]["played_by"] == "collective"
        assert data["result"]["next_turn"] == 1

        game = (await db_client.get(f"/games/{game_id}")).json()
        assert game["current_turn"] == 1
        assert game["side_to_move"] == "white"
        assert game["score"] == {"black": 4, "white": 1}

        history = (await db_client.get(f"/games/{game_id}/moves")).json()
        assert [m["position"] for m in history] == ["C4"]

        late = await db_client.post(
            f"/games/{game_id}/votes", json={"candidate_id": d3["id"]}, headers=auth_headers("u4")
        )
        assert late.status_code == 404

    async def test_keyed_advance_is_idempotent(self, db_client: AsyncClient):
        game = await create_game(db_client)
        first = await db_client.post(f"/games/{game['id']}/advance", params={"turn": 0})
        second = await db_client.post(f"/games/{game['id']}/advance", params={"turn": 0})
        assert first.json()["resolved"] is True
        assert first.json()["result"]["fallback"] is True
        assert second.json() == {"resolved": False, "result": None}

    async def test_advance_unknown_game(self, db_client: AsyncClient):
        resp = await db_client.post("/games/missing/advance")
        assert resp.status_code == 404
