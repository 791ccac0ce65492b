import asyncio
import time
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from inkuinfo import main as app_main
from inkuinfo.config import AppConfig
from inkuinfo.formatting import EventFormatter
from inkuinfo.main import BoardRenderer, _board_signature, print_board
from inkuinfo.models import DisplayEvent

TZ = ZoneInfo("Europe/Helsinki")
NOW = datetime(2024, 3, 1, 8, 0, tzinfo=TZ)


def _event(title: str, days: int = 0, location=None) -> DisplayEvent:
    start = datetime(2024, 3, 1, 10, 0, tzinfo=TZ) + timedelta(days=days)
    return DisplayEvent(title=title, start=start, end=start + timedelta(hours=1), location=location)


def test_signature_ignores_filtered_location_noise():
    fmt = EventFormatter("Europe/Helsinki", location_filters=["Finland"])
    a = _board_signature(fmt, [_event("Kahvit", location="Otaniemi, Finland")], "Friday")
    b = _board_signature(fmt, [_event("Kahvit", location="Otaniemi")], "Friday")
    c = _board_signature(fmt, [_event("Kahvit", location="Keilaniemi")], "Friday")

    assert a == b
    assert a != c


def test_board_renderer_skips_unchanged_board(monkeypatch):
    rendered = []
    monkeypatch.setattr(app_main, "render_board", lambda **kwargs: kwargs["events"])
    cfg = AppConfig()
    renderer = BoardRenderer(
        cfg,
        EventFormatter(cfg.timezone),
        output=lambda img, display_cfg: rendered.append(img),
        clock=lambda: NOW,
    )

    async def publish():
        renderer((_event("Kahvit"),))
        await renderer.drain()
        renderer((_event("Kahvit"),))
        await renderer.drain()
        renderer((_event("Kahvit"), _event("Sauna", days=1)))
        await renderer.drain()

    asyncio.run(publish())

    assert len(rendered) == 2


def test_superseded_board_is_not_drawn(monkeypatch):
    rendered = []
    monkeypatch.setattr(app_main, "render_board", lambda **kwargs: kwargs["events"])
    cfg = AppConfig()
    renderer = BoardRenderer(
        cfg,
        EventFormatter(cfg.timezone),
        output=lambda img, display_cfg: rendered.append([e.title for e in img]),
        clock=lambda: NOW,
    )

    async def publish():
        renderer((_event("Kahvit"),))
        renderer((_event("Sauna"),))
        await renderer.drain()

    asyncio.run(publish())

    assert rendered == [["Sauna"]]


def test_slow_display_does_not_stall_the_event_loop(monkeypatch):
    outputs = []

    def slow_output(img, display_cfg):
        time.sleep(0.3)
        outputs.append(img)

    class FakeSource:
        def list_events(self, time_min, max_results=10):
            return [{"summary": "Sauna", "start": {"date": "2099-03-01"}, "end": {"date": "2099-03-02"}}]

    monkeypatch.setattr(app_main, "render_board", lambda **kwargs: "image")
    cfg = AppConfig(refresh_interval_seconds=0.05)
    formatter, state, poller, scheduler = app_main.build_app(cfg, source=FakeSource())
    renderer = BoardRenderer(cfg, formatter, output=slow_output)
    state.subscribe(renderer)

    async def run_with_heartbeat():
        loop = asyncio.get_running_loop()
        done = asyncio.Event()
        gaps = []

        async def heartbeat():
            last = loop.time()
            while not done.is_set():
                await asyncio.sleep(0.02)
                now = loop.time()
                gaps.append(now - last)
                last = now

        beat = asyncio.create_task(heartbeat())
        await scheduler.run(iterations=3)
        await renderer.drain()
        done.set()
        await beat
        return gaps

    gaps = asyncio.run(run_with_heartbeat())

    assert outputs == ["image"]
    assert max(gaps) < 0.2


def test_print_board_groups_by_tier(capsys):
    fmt = EventFormatter("Europe/Helsinki")
    events = [_event(f"Event {i}", days=i) for i in range(6)]

    print_board(fmt, events)

    out = capsys.readouterr().out
    assert "[big] Event 0" in out
    assert "[medium] Event 3" in out
    assert "[small] Event 4" in out
    assert "    Tue, 3/5/2024, 10:00 – 11:00" in out


def test_once_runs_a_single_refresh_and_renders(tmp_path, monkeypatch, capsys):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("calendar:\n  api_key: 'key'\n", encoding="utf-8")
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_CALENDAR_ID", raising=False)
    monkeypatch.setattr(app_main, "load_dotenv", lambda: None)

    class FakeSource:
        def __init__(self, calendar_id, api_key):
            assert api_key == "key"

        def list_events(self, time_min, max_results=10):
            return [{"summary": "Vappu", "start": {"date": "2099-04-30"}, "end": {"date": "2099-05-02"}}]

    outputs = []
    monkeypatch.setattr(app_main, "GoogleCalendarSource", FakeSource)
    monkeypatch.setattr(app_main, "render_board", lambda **kwargs: "image")
    monkeypatch.setattr(app_main, "output_image", lambda img, display_cfg: outputs.append(img))

    code = app_main.main(["--config", str(cfg_path), "--once"])

    assert code == 0
    assert outputs == ["image"]
    out = capsys.readouterr().out
    assert "[big] Vappu" in out
    assert "Thursday, April 30, 2099 – Friday, May 1, 2099" in out


def test_missing_api_key_exits_with_error(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setattr(app_main, "load_dotenv", lambda: None)

    code = app_main.main(["--config", str(tmp_path / "none.yaml"), "--once"])

    assert code == 2
    assert "GOOGLE_API_KEY" in capsys.readouterr().err
