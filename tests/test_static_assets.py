from starlette.testclient import TestClient

from pyssr.config import LONG_CACHE_SECONDS, Settings
from pyssr.runtime.app import NOT_READY_BODY, SSRApp


def build_project(tmp_path):
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "app.js").write_text("console.log('app')", encoding="utf-8")
    (dist / "service-worker.js").write_text("self.addEventListener('fetch', () => {})", encoding="utf-8")
    (dist / "server_bundle.py").write_text("def render(context):\n    return ''\n", encoding="utf-8")
    (dist / "index.html").write_text("<body><!-- APP --></body>", encoding="utf-8")

    public = tmp_path / "public"
    public.mkdir()
    (public / "logo-48.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (public / "style.css").write_text("body { color: red; }", encoding="utf-8")

    (tmp_path / "manifest.json").write_text('{"name": "demo"}', encoding="utf-8")


def client_for(tmp_path, production):
    app = SSRApp(Settings(root=tmp_path, production=production), load_artifacts=False)
    return TestClient(app)


def test_production_cache_headers(tmp_path):
    build_project(tmp_path)
    client = client_for(tmp_path, production=True)
    long_cache = f"public, max-age={LONG_CACHE_SECONDS}"

    response = client.get("/dist/app.js")
    assert response.status_code == 200
    assert response.text == "console.log('app')"
    assert response.headers["cache-control"] == long_cache

    response = client.get("/service-worker.js")
    assert response.status_code == 200
    assert response.headers["cache-control"] == long_cache

    response = client.get("/public/style.css")
    assert response.text == "body { color: red; }"
    assert response.headers["cache-control"] == long_cache

    response = client.get("/manifest.json")
    assert response.json() == {"name": "demo"}
    assert response.headers["cache-control"] == "public, max-age=0"


def test_development_disables_caching(tmp_path):
    build_project(tmp_path)
    client = client_for(tmp_path, production=False)

    for path in ["/dist/app.js", "/service-worker.js", "/public/style.css", "/manifest.json"]:
        response = client.get(path)
        assert response.status_code == 200, path
        assert response.headers["cache-control"] == "public, max-age=0", path


def test_favicon(tmp_path):
    build_project(tmp_path)
    response = client_for(tmp_path, production=True).get("/favicon.ico")
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")
    assert response.headers["content-type"] == "image/png"


def test_server_artifacts_are_not_served(tmp_path):
    build_project(tmp_path)
    client = client_for(tmp_path, production=False)
    assert client.get("/dist/server_bundle.py").status_code == 404
    assert client.get("/dist/index.html").status_code == 404


def test_nested_server_artifacts_are_not_served(tmp_path):
    dist = tmp_path / "dist"
    (dist / "server").mkdir(parents=True)
    (dist / "shell").mkdir()
    (dist / "server" / "bundle.py").write_text("def render(context):\n    return ''\n", encoding="utf-8")
    (dist / "server" / "chunk.js").write_text("chunk()", encoding="utf-8")
    (dist / "shell" / "index.html").write_text("<body><!-- APP --></body>", encoding="utf-8")

    settings = Settings(root=tmp_path, bundle="server/bundle.py", template="./shell/index.html")
    client = TestClient(SSRApp(settings, load_artifacts=False))

    assert client.get("/dist/server/bundle.py").status_code == 404
    assert client.get("/dist/shell/index.html").status_code == 404
    # Neighbouring files stay public
    assert client.get("/dist/server/chunk.js").text == "chunk()"


def test_missing_files_return_404(tmp_path):
    client = client_for(tmp_path, production=False)
    assert client.get("/favicon.ico").status_code == 404
    assert client.get("/manifest.json").status_code == 404
    assert client.get("/service-worker.js").status_code == 404
    assert client.get("/dist/app.js").status_code == 404
    assert client.get("/public/style.css").status_code == 404

    # The render route is unaffected
    assert client.get("/").text == NOT_READY_BODY


def test_build_directory_created_after_startup(tmp_path):
    client = client_for(tmp_path, production=False)
    assert client.get("/dist/app.js").status_code == 404

    build_project(tmp_path)
    response = client.get("/dist/app.js")
    assert response.status_code == 200
    assert response.text == "console.log('app')"


def test_custom_directories(tmp_path):
    assets = tmp_path / "build" / "client"
    assets.mkdir(parents=True)
    (assets / "main.js").write_text("main()", encoding="utf-8")

    settings = Settings(root=tmp_path, dist_dir="build/client")
    client = TestClient(SSRApp(settings, load_artifacts=False))
    assert client.get("/dist/main.js").text == "main()"
