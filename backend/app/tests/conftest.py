from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from app.config.config import Settings
from app.main import create_app
from app.services.path_resolver import DocumentRoot

INDEX_TEMPLATE = (
    "<title>{{ path }}</title>\n"
    "{% for e in entry %}<a href=\"{{ e.href }}\">{{ e.name }}</a> "
    "{{ e.datetime | from_mtimestamp }} {{ e.size | humanize_size }}\n{% endfor %}"
    "{% if maybe_truncated %}TRUNCATED{% endif %}"
)
ERROR_TEMPLATE = "<h1>{{ status }}</h1><p>{{ message }}</p>"


def write_templates(config_dir: Path, index: str = INDEX_TEMPLATE, error: str = ERROR_TEMPLATE) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "index.html").write_text(index)
    (config_dir / "error.html").write_text(error)


@pytest.fixture
def www(tmp_path: Path) -> Path:
    """Document root holding docs/ with a.txt (10 bytes), b.txt (20 bytes) and subdirectory c/."""
    root = tmp_path / "www"
    docs = root / "docs"
    (docs / "c").mkdir(parents=True)
    (docs / "a.txt").write_bytes(b"x" * 10)
    (docs / "b.txt").write_bytes(b"x" * 20)
    return root


@pytest.fixture
def doc_root(www: Path) -> DocumentRoot:
    return DocumentRoot(prefix="/", directory=www)


@pytest.fixture
def make_settings(tmp_path: Path, www: Path):
    """Build Settings serving ``www`` at '/', with both the HTML index and the JSON API enabled."""

    def _factory(template: dict | None = None, **service) -> Settings:
        config_dir = tmp_path / "config"
        write_templates(config_dir)
        return Settings(
            config_dir=config_dir,
            service={"root": str(www), "json_api": True, **service},
            template=template if template is not None else {"index_file": "index.html", "error_file": "error.html"},
        )

    return _factory


@pytest.fixture
def make_client(make_settings):
    def _factory(**kwargs) -> AsyncClient:
        app = create_app(make_settings(**kwargs))
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _factory


@pytest.fixture
async def client(make_client):
    async with make_client() as ac:
        yield ac
