"""Tests for the console transport and the bot wiring."""
import io

import trio

from bot_main import build_pipeline
from config import ConfigManager
from features.console import ConsoleOutput, parse_line, read_events


class TestParseLine:
    def test_plain_text(self):
        event = parse_line("  hello there \n", sender="bob")
        assert event == {
            "type": "text",
            "platform": "console",
            "text": "hello there",
            "raw": {"sender": "bob"},
        }

    def test_blank_line(self):
        assert parse_line("   \n") is None

    def test_json_object_filled_in(self):
        event = parse_line('{"type": "postback", "text": "BUY"}')
        assert event["type"] == "postback"
        assert event["platform"] == "console"
        assert event["text"] == "BUY"
        assert event["raw"] == {"sender": "console"}

    def test_broken_json_is_text(self):
        event = parse_line("{not json")
        assert event["text"] == "{not json"


def test_read_events_skips_blank_lines():
    async def collect():
        stream = io.StringIO('hello\n\n{"text": "hi"}\n')
        return [event async for event in read_events(stream)]

    events = trio.run(collect)
    assert [e["text"] for e in events] == ["hello", "hi"]


def test_console_output_prints():
    out = io.StringIO()
    ConsoleOutput(out)({"platform": "console", "text": "hi"})
    assert out.getvalue() == "[console] hi\n"


class TestBotWiring:
    def make_pipeline(self, tmp_path, overrides=""):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"pipeline:\n  data_dir: {tmp_path / 'data'}\n{overrides}")
        config_mgr = ConfigManager(str(config_path))
        config_mgr.load()
        pipeline = build_pipeline(config_mgr)
        pipeline.load_middlewares()
        return pipeline

    def test_echo_round_trip(self, tmp_path, capsys):
        pipeline = self.make_pipeline(tmp_path)
        trio.run(pipeline.incoming.dispatch, parse_line("ping"))
        assert capsys.readouterr().out == "[console] ping\n"

    def test_license_blocks_other_platforms(self, tmp_path, capsys, caplog):
        pipeline = self.make_pipeline(tmp_path, "license:\n  platforms: [console]\n")
        trio.run(
            pipeline.incoming.dispatch,
            {"type": "text", "platform": "web", "text": "ping", "raw": {}},
        )
        assert capsys.readouterr().out == ""
        assert any("not covered by the license" in r.getMessage() for r in caplog.records)

    def test_failure_report_apologises(self, tmp_path, capsys):
        pipeline = self.make_pipeline(tmp_path)

        def explode(event):
            raise RuntimeError("kaput")

        pipeline.register_middleware({"name": "explode", "type": "incoming", "order": -1, "handler": explode})
        pipeline.load_middlewares()
        trio.run(pipeline.incoming.dispatch, parse_line("ping"))
        assert capsys.readouterr().out == "[console] Sorry, something went wrong.\n"

    def test_admin_registered_first(self, tmp_path):
        pipeline = self.make_pipeline(tmp_path)
        names = [m.name for m in pipeline.get_middlewares()]
        assert names[0] == "admin_controls"
        assert set(names) == {
            "admin_controls",
            "console_echo",
            "console_failure_report",
            "console_output",
        }
