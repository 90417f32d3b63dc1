"""Profile read/update and user search."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from httpx import AsyncClient
from PIL import Image

from homelearn.config import get_settings


def _png(width: int = 640, height: int = 480) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), (200, 30, 30, 128)).save(buf, format="PNG")
    return buf.getvalue()


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_profile(self, client: AsyncClient, alice) -> None:
        resp = await client.get("/api/profile", headers=alice.headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "alice@example.com"
        assert data["user_code"] == alice.user_code
        assert data["profile_pic"] is None

    @pytest.mark.asyncio
    async def test_update_text_fields(self, client: AsyncClient, alice) -> None:
        resp = await client.put(
            "/api/profile",
            data={"username": "alicia", "biography": "I knit."},
            headers=alice.headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Profile updated successfully"
        assert data["username"] == "alicia"
        assert data["biography"] == "I knit."

        profile = (await client.get("/api/profile", headers=alice.headers)).json()
        assert profile["username"] == "alicia"

    @pytest.mark.asyncio
    async def test_blank_username_keeps_current(self, client: AsyncClient, alice) -> None:
        resp = await client.put("/api/profile", data={"username": "  ", "biography": "x"}, headers=alice.headers)
        assert resp.status_code == 200
        assert resp.json()["username"] == "alice"

    @pytest.mark.asyncio
    async def test_username_taken(self, client: AsyncClient, alice, bob) -> None:
        resp = await client.put("/api/profile", data={"username": "bob"}, headers=alice.headers)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Username already taken"

    @pytest.mark.asyncio
    async def test_rejected_update_leaves_no_stored_picture(self, client: AsyncClient, alice, bob) -> None:
        upload_dir = Path(get_settings().upload_dir)
        before = set(upload_dir.iterdir())
        files = {"profilePic": ("me.png", _png(), "image/png")}
        resp = await client.put("/api/profile", data={"username": "bob"}, files=files, headers=alice.headers)
        assert resp.status_code == 400
        assert set(upload_dir.iterdir()) == before
        profile = (await client.get("/api/profile", headers=alice.headers)).json()
        assert profile["profile_pic"] is None

    @pytest.mark.asyncio
    async def test_avatar_resized_to_jpeg(self, client: AsyncClient, alice) -> None:
        files = {"profilePic": ("me.png", _png(), "image/png")}
        resp = await client.put("/api/profile", files=files, headers=alice.headers)
        assert resp.status_code == 200
        pic = resp.json()["profile_pic"]
        assert pic.startswith(f"uploads/profile-{alice.id}-")
        assert pic.endswith(".jpg")

        stored = Path(get_settings().upload_dir) / pic.removeprefix("uploads/")
        with Image.open(stored) as img:
            assert img.format == "JPEG"
            assert img.size == (200, 200)
            assert img.mode == "RGB"

        served = await client.get(f"/{pic}")
        assert served.status_code == 200
        assert served.headers["content-type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, client: AsyncClient, alice) -> None:
        files = {"profilePic": ("notes.txt", b"hello", "text/plain")}
        resp = await client.put("/api/profile", files=files, headers=alice.headers)
        assert resp.status_code == 400
        profile = (await client.get("/api/profile", headers=alice.headers)).json()
        assert profile["profile_pic"] is None

    @pytest.mark.asyncio
    async def test_undecodable_image(self, client: AsyncClient, alice) -> None:
        files = {"profilePic": ("fake.png", b"definitely not a png", "image/png")}
        resp = await client.put("/api/profile", files=files, headers=alice.headers)
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to update profile"


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_excludes_self(self, client: AsyncClient, make_user) -> None:
        alice = await make_user("alice")
        await make_user("alicia")
        await make_user("bob")

        resp = await client.get("/api/users/search", params={"q": "ali"}, headers=alice.headers)
        assert resp.status_code == 200
        results = resp.json()
        assert [u["username"] for u in results] == ["alicia"]
        assert set(results[0]) == {"id", "username", "user_code", "profile_pic"}

    @pytest.mark.asyncio
    async def test_search_by_code(self, client: AsyncClient, alice, bob) -> None:
        resp = await client.get("/api/users/search", params={"q": bob.user_code}, headers=alice.headers)
        assert [u["username"] for u in resp.json()] == ["bob"]

    @pytest.mark.asyncio
    async def test_short_query(self, client: AsyncClient, alice) -> None:
        resp = await client.get("/api/users/search", params={"q": "a"}, headers=alice.headers)
        assert resp.status_code == 400
