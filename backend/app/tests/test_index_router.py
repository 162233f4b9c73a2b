"""Tests for the HTML directory index served on every other GET path."""

from pathlib import Path

from httpx import AsyncClient

from app.services.errors import NotFound


class TestDirectoryIndex:
    async def test_renders_listing(self, client: AsyncClient) -> None:
        response = await client.get("/docs/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<title>/docs/</title>" in response.text
        for href in ("/docs/a.txt", "/docs/b.txt", "/docs/c/"):
            assert f'href="{href}"' in response.text
        assert "TRUNCATED" not in response.text

    async def test_root_listing(self, client: AsyncClient) -> None:
        response = await client.get("/")
        assert response.status_code == 200
        assert 'href="/docs/"' in response.text

    async def test_template_filters(self, client: AsyncClient) -> None:
        response = await client.get("/docs/")
        assert "10 B" in response.text
        assert "20 B" in response.text

    async def test_redirects_to_trailing_slash(self, client: AsyncClient) -> None:
        response = await client.get("/docs")
        assert response.status_code == 308
        assert response.headers["location"] == "/docs/"

    async def test_redirect_uses_normalized_path(self, client: AsyncClient) -> None:
        response = await client.get("/docs/%2e/c")
        assert response.status_code == 308
        assert response.headers["location"] == "/docs/c/"

    async def test_redirect_keeps_query_string(self, client: AsyncClient) -> None:
        response = await client.get("/docs?sort=name")
        assert response.status_code == 308
        assert response.headers["location"] == "/docs/?sort=name"

    async def test_truncation_banner(self, make_client) -> None:
        async with make_client(limit=2) as client:
            response = await client.get("/docs/")
        assert response.status_code == 200
        assert response.text.count("<a href=") == 2
        assert "TRUNCATED" in response.text

    async def test_names_are_escaped(self, client: AsyncClient, www: Path) -> None:
        (www / "docs" / "<b>.txt").touch()
        response = await client.get("/docs/")
        assert "&lt;b&gt;.txt" in response.text
        assert 'href="/docs/%3Cb%3E.txt"' in response.text
        assert "<b>.txt" not in response.text


class TestDirectoryIndexErrors:
    async def test_missing_directory(self, client: AsyncClient) -> None:
        response = await client.get("/missing/")
        assert response.status_code == 404
        assert response.text == f"<h1>404</h1><p>{NotFound.message}</p>"

    async def test_encoded_dotdot_escape(self, client: AsyncClient, www: Path) -> None:
        escaped = await client.get("/%2e%2e/%2e%2e/etc/")
        missing = await client.get("/missing/")
        assert escaped.status_code == 404
        assert escaped.text == missing.text
        assert str(www.parent) not in escaped.text

    async def test_file_is_not_a_directory(self, client: AsyncClient) -> None:
        response = await client.get("/docs/a.txt")
        assert response.status_code == 400
        assert "<h1>400</h1>" in response.text

    async def test_invalid_utf8(self, client: AsyncClient) -> None:
        response = await client.get("/%ff%fe/")
        assert response.status_code == 400

    async def test_plain_text_without_error_template(self, make_client) -> None:
        async with make_client(template={"index_file": "index.html"}) as client:
            response = await client.get("/missing/")
        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == NotFound.message

    async def test_render_failure_is_internal_error(self, make_client, tmp_path: Path) -> None:
        # Attribute access on an undefined value fails at render time, not at load
        (tmp_path / "config").mkdir(exist_ok=True)
        (tmp_path / "config" / "broken.html").write_text("{{ entry.nope.deeper }}")
        async with make_client(template={"index_file": "broken.html"}) as client:
            response = await client.get("/docs/")
        assert response.status_code == 500
        assert response.text == "Internal Server Error"


class TestTemplateIndexToggle:
    async def test_disabled_by_setting(self, make_client) -> None:
        async with make_client(template_index=False) as client:
            response = await client.get("/docs/")
        assert response.status_code == 404
