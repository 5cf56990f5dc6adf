from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from feedstat.core.errors import InvalidConfiguration, NoMatch
from feedstat.core.matcher import Matcher


def test_pattern_matches_substring_without_captures():
    m = Matcher.build(pattern="committed")
    assert m.kind == "pattern"
    assert m.match_line("2015-09-10 21:06:34,594 INFO - committed deletes") == (None, None)
    with pytest.raises(NoMatch):
        m.match_line("2015-09-10 21:06:34,594 INFO - rolled back")


def test_regex_returns_up_to_two_captures():
    one = Matcher.build(regex=r"docWriteTime=([^}]+)}")
    assert one.match_line("x docWriteTime=2015-11-09 01:29:32}") == ("2015-11-09 01:29:32", None)

    two = Matcher.build(regex=r"in (\d+)ms for (\d+) records")
    assert two.match_line("done in 2092ms for 100 records") == ("2092", "100")

    with pytest.raises(NoMatch):
        two.match_line("done in a while")


def test_regex_wins_over_pattern():
    m = Matcher.build(regex=r"ok=(\d+)", pattern="ok")
    assert m.kind == "regex"


def test_pattern_never_matches_as_batch_marker():
    m = Matcher.build(pattern="Context contains")
    with pytest.raises(NoMatch):
        m.match_batch("Context contains 12")
    r = Matcher.build(regex=r"Context contains (\d+)")
    assert r.match_batch("2015-11-09 02:00:00,1 Context contains 12") == ("12", None)


@pytest.mark.parametrize(
    "kwargs",
    [{}, {"regex": None, "pattern": None}, {"regex": "(unclosed"}, {"regex": r"(a)(b)(c)"}],
)
def test_bad_rules_are_invalid_configuration(kwargs):
    with pytest.raises(InvalidConfiguration):
        Matcher.build(**kwargs)
