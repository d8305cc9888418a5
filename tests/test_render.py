# tests/test_render.py
from pingstat.core.state import MetricsRecord
from pingstat.core.store import MetricsStore
from pingstat.render import render


def test_render_example_key():
    out = render([(("192.0.2.1", ""), MetricsRecord(5, 4, 0.042))])
    lines = out.splitlines()
    assert 'total_pings{ip="192.0.2.1",netns=""} 5' in lines
    assert 'successful_pings{ip="192.0.2.1",netns=""} 4' in lines
    assert 'successful_ping_wait_sum{ip="192.0.2.1",netns=""} 0.042' in lines


def test_render_empty_snapshot_is_empty():
    assert render(MetricsStore().snapshot()) == ""


def test_render_groups_are_separated_and_sorted():
    snapshot = [
        (("2001:db8::1", "blue"), MetricsRecord(1, 0, 0.0)),
        (("192.0.2.1", ""), MetricsRecord(2, 2, 0.5)),
    ]
    groups = render(snapshot).split("\n\n")
    assert groups[-1] == ""
    assert groups[0].startswith('total_pings{ip="192.0.2.1",netns=""} 2')
    assert groups[1].splitlines() == [
        'total_pings{ip="2001:db8::1",netns="blue"} 1',
        'successful_pings{ip="2001:db8::1",netns="blue"} 0',
        'successful_ping_wait_sum{ip="2001:db8::1",netns="blue"} 0.0',
    ]


def test_render_from_store():
    store = MetricsStore()
    store.record(("198.51.100.7", "red"), True, 0.25)
    out = render(store.snapshot())
    assert 'successful_ping_wait_sum{ip="198.51.100.7",netns="red"} 0.25\n\n' in out


def test_render_skips_keys_without_attempts():
    snapshot = [
        (("192.0.2.1", ""), MetricsRecord()),
        (("192.0.2.2", ""), MetricsRecord(1, 1, 0.5)),
    ]
    out = render(snapshot)
    assert "192.0.2.1" not in out
    assert out.startswith('total_pings{ip="192.0.2.2",netns=""} 1\n')
