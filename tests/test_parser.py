from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from feedstat.core.errors import InvalidConfiguration
from feedstat.core.parser import LogParser
from feedstat.core.results import BatchResult, HourResult, VolumeResult

INCORRECT_LINES = [
    "incorrect line",
    "",
    "2015-09-11 09:28:49,842 aaaaaaaaaaaaaaaaaa timestamp=aaaa",
    "2015-09-11 09:28:49,842 aaaaaaaaaaaaaaaaaa docWriteTime=aaaa",
    "2015-09-11 09:28:49,842 aaaaaaaaaaaaaaaaaa DocWriteTime=aaaa",
]


def _assert_rejects_incorrect(parser: LogParser) -> None:
    for line in INCORRECT_LINES:
        time, watermark, _ = parser.extract_info(line)
        assert time is None
        assert watermark is None


def test_ng_publisher_line():
    parser = LogParser.from_rules(regex=r"docWriteTime=([^}]+?)}")
    line = "2015-09-09 02:35:01,024 =, docWriteTime=2015-09-09 01:35:03}, "
    assert parser.extract_info(line) == ("2015-09-09 02:35:01", "2015-09-09 01:35:03", None)
    _assert_rejects_incorrect(parser)


def test_ng_consumer_line():
    parser = LogParser.from_rules(regex=r"timestamp=(.{28})eve")
    line = "2015-09-11 09:28:49,842 INFO timestamp=Fri Sep 11 09:28:49 BST 2015eventId=45139252}"
    assert parser.extract_info(line) == ("2015-09-11 09:28:49", "Fri Sep 11 09:28:49 BST 2015", None)
    _assert_rejects_incorrect(parser)


def test_v1_publisher_line():
    parser = LogParser.from_rules(regex=r"DocWriteTime=([^,]+?),")
    line = "2015-11-08 09:07:54,679 JMS DocWriteTime=20151028 07:17:17,"
    assert parser.extract_info(line) == ("2015-11-08 09:07:54", "20151028 07:17:17", None)
    _assert_rejects_incorrect(parser)


def test_trimmer_pattern_line():
    parser = LogParser.from_rules(pattern="committed")
    line = "2015-09-10 21:06:34,594 INFO    - committed deletes to disk cache"
    assert parser.extract_info(line) == ("2015-09-10 21:06:34", None, None)
    assert parser.process_line(line) == 1
    stat = parser.result.map[2015091021]
    assert stat.done == 1
    assert stat.last_time_stamp == ""


def test_doc_write_time_scenario_builds_hour_bucket():
    parser = LogParser.from_rules(regex=r"docWriteTime=([^}]+)}")
    line = "2015-11-09 02:01:03,842 X docWriteTime=2015-11-09 01:29:32}"
    assert parser.extract_info(line) == ("2015-11-09 02:01:03", "2015-11-09 01:29:32", None)
    assert parser.process_line(line) == 1
    stat = parser.result.map[2015110902]
    assert stat.last_sample_time == "2015-11-09 02:01:03"
    assert stat.last_time_stamp == "2015-11-09 01:29:32"


def test_mode_follows_batch_rule():
    assert isinstance(LogParser.from_rules(pattern="committed").result, HourResult)
    assert isinstance(
        LogParser.from_rules(pattern="committed", batch=r"Context contains (\d+)").result, BatchResult
    )
    parser = LogParser.from_rules(regex=r"in (\d+)ms for (\d+) records", mode="volume", delimiter="period")
    assert isinstance(parser.result, VolumeResult)


def test_missing_rules_are_rejected():
    with pytest.raises(InvalidConfiguration):
        LogParser.from_rules()
    with pytest.raises(ValueError):
        LogParser.from_rules(pattern="x", delimiter="semicolon")


def test_single_capture_marker_uses_leading_time_as_batch_id():
    parser = LogParser.from_rules(pattern="committed", batch=r"Context contains (\d+)")
    lines = [
        "2015-11-09 02:00:00,001 INFO Context contains 100 items",
        "2015-11-09 02:00:05,001 INFO committed",
        "2015-11-09 02:00:09,001 INFO committed",
    ]
    for line in lines:
        parser.process_line(line)
    result = parser.result
    assert result.current_batch == 20151109020000
    stat = result.map[20151109020000]
    assert stat.total == 100
    assert stat.done == 2
    assert stat.last_sample_time == "2015-11-09 02:00:00"
    assert stat.last_time_stamp == "2015-11-09 02:00:09"


def test_zero_size_marker_is_ignored():
    parser = LogParser.from_rules(pattern="committed", batch=r"Context contains (\d+)")
    parser.process_line("2015-11-09 02:00:00,001 INFO Context contains 0 items")
    assert parser.result.current_batch is None
    assert parser.result.map == {}


def test_two_capture_marker_is_keyed_by_leading_time():
    parser = LogParser.from_rules(pattern="committed", batch=r"Batch (\d+) contains (\d+)")
    parser.process_line("2015-11-09 02:00:00,001 INFO Batch 7 contains 100")
    parser.process_line("2015-11-09 02:30:00,001 INFO committed")
    result = parser.result
    assert list(result.map) == [20151109020000]
    stat = result.map[20151109020000]
    assert (stat.total, stat.done, stat.last_sample_time) == (100, 1, "2015-11-09 02:00:00")
    assert stat.batch_minutes() == 30


def test_two_capture_marker_without_leading_time_uses_empty_id():
    parser = LogParser.from_rules(pattern="committed", batch=r"Batch (\d+) contains (\d+)")
    parser.process_line("Batch 7 contains 12")
    assert parser.result.current_batch == 0
    assert parser.result.map[0].total == 12


def test_counts_must_be_plain_non_negative_integers():
    parser = LogParser.from_rules(regex=r"in (-?\d+)ms for (\S+) records", mode="volume", delimiter="period")
    parser.process_line("2015-11-09 02:01:03.123 loaded in 100ms for -50 records")
    parser.process_line("2015-11-09 02:01:04.123 loaded in -40ms for 1_0 records")
    stat = parser.result.map[2015110902]
    assert stat.count == 2  # 負数や "1_0" は読めない件数として 1 件扱い
    assert stat.spent == 100

    batch = LogParser.from_rules(pattern="committed", batch=r"Context contains (-?\d+)")
    batch.process_line("2015-11-09 02:00:00,001 INFO Context contains -5")
    assert batch.result.map == {}


def test_two_captures_feed_value_and_count():
    parser = LogParser.from_rules(regex=r"in (\d+)ms for (\w+) records", mode="volume", delimiter="period")
    parser.process_line("2015-11-09 02:01:03.123 loaded in 2092ms for 100 records")
    parser.process_line("2015-11-09 02:07:44.001 loaded in 8ms for many records")
    stat = parser.result.map[2015110902]
    assert stat.count == 101  # 件数が数値でなければ 1 件として数える
    assert stat.spent == 2100
    assert stat.period == "2015-11-09 02:07:44"


def test_line_without_leading_field_contributes_nothing():
    parser = LogParser.from_rules(pattern="committed")
    assert parser.process_line("committed without a timestamp") is None
    assert parser.result.map == {}


def test_report_lines_and_records():
    parser = LogParser.from_rules(regex=r"docWriteTime=([^}]+)}")
    parser.process_line("2015-11-09 01:59:00,1 docWriteTime=2015-11-09 01:58:00}")
    parser.process_line("2015-11-09 02:10:00,1 docWriteTime=2015-11-09 02:00:00}")
    parser.wrap_up_file()
    assert parser.report_lines("NG") == [
        "NG-0,10, 2015-11-09 02:10:00, 0, 1, 2015-11-09 02:00:00, 0.10, 00:10:00"
    ]
    rec = parser.records("NG")[0]
    assert rec["monitor"] == "NG"
    assert rec["key"] == 2015110902
    assert rec["mode"] == "hour"
    assert rec["delay"] == "00:10:00"


def test_print_result_writes_report(capsys):
    parser = LogParser.from_rules(pattern="committed")
    parser.process_line("2015-11-09 01:00:00,1 committed")
    parser.process_line("2015-11-09 02:00:00,1 committed")
    parser.print_result("Trim")
    out = capsys.readouterr().out.splitlines()
    assert out == ["Trim-0,0, 2015-11-09 02:00:00, 0, 1, Not Available, 1.00, 0"]
