# tests/cli/test_main.py
import pytest
from loguru import logger

from cli import main as cli_main
from domain.exceptions import ConnectFailed


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.remove()


def test_config_error_exit_code(capsys, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    code = cli_main.run(["-F", "broken", "http://x.test/"])

    assert code == 1
    assert capsys.readouterr().err.startswith("webfetch: Illegal form field")


def test_fetch_error_is_reported(capsys, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    async def failing_run(options):
        raise ConnectFailed("Failed to connect to x.test port 80: refused", category="refused")

    monkeypatch.setattr(cli_main, "_run", failing_run)

    code = cli_main.run(["-s", "http://x.test/"])

    assert code == 1
    assert "webfetch: Failed to connect to x.test port 80" in capsys.readouterr().err


def test_success(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    seen = []

    async def ok_run(options):
        seen.append(options)

    monkeypatch.setattr(cli_main, "_run", ok_run)

    assert cli_main.run(["-v", "http://x.test/"]) == 0
    assert seen[0].verbose is True


def test_main_exits_with_run_code(monkeypatch):
    monkeypatch.setattr(cli_main, "run", lambda argv=None: 7)
    with pytest.raises(SystemExit) as exc_info:
        cli_main.main()
    assert exc_info.value.code == 7


@pytest.mark.network
def test_live_redirect_and_retry(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code = cli_main.run(["-L", "-s", "-o", "out.txt", "--retry", "2", "http://httpbin.org/redirect/2"])
    assert code == 0
    assert (tmp_path / "out.txt").stat().st_size > 0


@pytest.fixture
def local_server():
    import threading
    from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

    class Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_GET(self):
            if self.path == "/start":
                self.send_response(302)
                self.send_header("Location", "/final")
                self.send_header("Set-Cookie", "sid=abc; Path=/; Max-Age=3600")
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
            body = f"cookie={self.headers.get('Cookie')}".encode()
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_end_to_end_against_local_server(local_server, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    code = cli_main.run(["-s", "-L", "-c", "jar.txt", "-o", "out.txt", f"{local_server}/start"])

    assert code == 0
    assert (tmp_path / "out.txt").read_bytes() == b"cookie=sid=abc"
    jar_text = (tmp_path / "jar.txt").read_text()
    assert "\tsid\tabc" in jar_text
