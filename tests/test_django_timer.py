import time
from datetime import timedelta

import pytest
from django.http import HttpResponse, StreamingHttpResponse
from django.test import Client, RequestFactory

from chrono.config import Config, ConfigHolder
from chrono.middleware.django_timer import TimingMiddleware, client_address, new, record_error


@pytest.fixture
def rf():
    return RequestFactory()


def sleeping_view(seconds, status=200):
    def view(request):
        time.sleep(seconds)
        return HttpResponse("ok", status=status)

    return view


def test_levels_follow_duration(rf, sink, chatty_config):
    middleware = TimingMiddleware(sleeping_view(0), config=chatty_config)
    middleware(rf.get("/fast"))
    middleware = TimingMiddleware(sleeping_view(0.05), config=chatty_config)
    middleware(rf.get("/slow"))
    middleware = TimingMiddleware(sleeping_view(0.2), config=chatty_config)
    middleware(rf.get("/very-slow"))

    assert [line.split(" ", 1)[0] for line in sink.lines] == ["[INFO]", "[WARN]", "[ERROR]"]
    assert sink.lines[1].endswith("GET     /slow")


def test_default_config_stays_quiet_for_fast_requests(rf, sink):
    response = HttpResponse("pong")
    middleware = TimingMiddleware(lambda request: response, config=Config(logger=sink))
    assert middleware(rf.get("/ping")) is response
    assert sink.lines == []


def test_disabled_never_logs(rf, sink, chatty_config):
    chatty_config.disable()
    middleware = TimingMiddleware(sleeping_view(0.2), config=chatty_config)
    assert middleware(rf.get("/very-slow")).status_code == 200
    assert sink.lines == []


def test_skip_path_still_runs_handler(rf, sink, chatty_config):
    chatty_config.add_skip_path("/health")
    calls = []

    def view(request):
        calls.append(request.path)
        return HttpResponse("OK")

    middleware = TimingMiddleware(view, config=chatty_config)
    middleware(rf.get("/health"))
    middleware(rf.get("/other"))
    assert calls == ["/health", "/other"]
    assert len(sink.lines) == 1
    assert sink.lines[0].endswith("/other")


def test_status_is_read_after_the_handler(rf, sink, chatty_config):
    def view(request):
        response = HttpResponse("created")
        response.status_code = 201
        return response

    TimingMiddleware(view, config=chatty_config)(rf.post("/items"))
    assert " | 201 | " in sink.lines[0]
    assert "POST    /items" in sink.lines[0]


def test_streaming_response(rf, sink, chatty_config):
    def view(request):
        return StreamingHttpResponse(iter([b"a", b"b"]), status=206)

    response = TimingMiddleware(view, config=chatty_config)(rf.get("/stream"))
    assert b"".join(response.streaming_content) == b"ab"
    assert " | 206 | " in sink.lines[0]


def test_user_agent_and_client_address(rf, sink, chatty_config):
    request = rf.get("/fast", HTTP_USER_AGENT="curl/8.4.0", REMOTE_ADDR="192.168.1.20")
    TimingMiddleware(sleeping_view(0), config=chatty_config)(request)
    assert "|    192.168.1.20 |" in sink.lines[0]
    assert sink.lines[0].endswith("/fast | curl/8.4.0")


def test_user_agent_can_be_left_out(rf, sink, chatty_config):
    chatty_config.log_user_agent = False
    request = rf.get("/fast", HTTP_USER_AGENT="curl/8.4.0")
    TimingMiddleware(sleeping_view(0), config=chatty_config)(request)
    assert sink.lines[0].endswith("/fast")


def test_forwarded_headers_only_when_trusted(rf):
    request = rf.get("/", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1", REMOTE_ADDR="10.0.0.1")
    assert client_address(request) == "10.0.0.1"
    assert client_address(request, trust_forwarded=True) == "203.0.113.9"

    request = rf.get("/", HTTP_X_REAL_IP="198.51.100.4")
    assert client_address(request, trust_forwarded=True) == "198.51.100.4"


def test_recorded_errors_are_appended(rf, sink, chatty_config):
    def view(request):
        record_error(request, "cache miss")
        record_error(request, ValueError("bad page"))
        return HttpResponse(status=400)

    TimingMiddleware(view, config=chatty_config)(rf.get("/page"))
    assert sink.lines[0].endswith("/page | cache miss; bad page")


def test_config_changes_after_construction_do_not_leak(rf, sink, chatty_config):
    middleware = TimingMiddleware(sleeping_view(0), config=chatty_config)
    chatty_config.disable()
    middleware(rf.get("/fast"))
    assert len(sink.lines) == 1


def test_holder_swaps_take_effect_on_next_request(rf, sink, chatty_config):
    holder = ConfigHolder(chatty_config)
    middleware = TimingMiddleware(sleeping_view(0), config=holder)
    holder.disable()
    middleware(rf.get("/a"))
    holder.enable()
    middleware(rf.get("/b"))
    assert len(sink.lines) == 1
    assert sink.lines[0].endswith("/b")


def test_new_returns_middleware_factory(rf, sink, chatty_config):
    wrap = new(chatty_config)
    handler = wrap(sleeping_view(0, status=204))
    assert handler(rf.get("/empty")).status_code == 204
    assert " | 204 | " in sink.lines[0]


def test_exceptions_propagate(rf, sink, chatty_config):
    def view(request):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        TimingMiddleware(view, config=chatty_config)(rf.get("/boom"))
    assert sink.lines == []


@pytest.fixture
def site_sink(settings, sink):
    settings.CHRONO = {
        "WARNING_THRESHOLD": timedelta(milliseconds=200),
        "ERROR_THRESHOLD": timedelta(seconds=1),
        "LOG_ALL_REQUESTS": True,
        "SKIP_PATHS": ["/health"],
        "LOGGER": sink,
        "COLORIZE": False,
    }
    return sink


def test_site_reads_settings(site_sink):
    client = Client()
    assert client.get("/fast", HTTP_USER_AGENT="pytest").status_code == 200
    assert client.get("/health").status_code == 200
    assert len(site_sink.lines) == 1
    line = site_sink.lines[0]
    assert line.startswith("[INFO] ")
    assert "| 200 |" in line
    assert "|       127.0.0.1 |" in line
    assert line.endswith("GET     /fast | pytest")


def test_site_records_view_errors(site_sink):
    client = Client()
    assert client.get("/teapot").status_code == 418
    assert site_sink.lines[0].endswith("/teapot | brewing refused")


def test_site_unhandled_exception_becomes_500(site_sink):
    client = Client(raise_request_exception=False)
    assert client.get("/boom").status_code == 500
    assert " | 500 | " in site_sink.lines[0]
    assert site_sink.lines[0].endswith("/boom | RuntimeError: boom")
