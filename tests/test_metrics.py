import pytest

from chainindexer.metrics import ERROR_COUNT, REGISTRY, Counter, GaugeVec, Registry


def test_counter_inc_and_add_accumulate():
    counter = Counter("test_total", "Help.")
    counter.inc()
    counter.add(2.5)
    assert counter.value == 3.5


def test_counter_rejects_negative_add():
    counter = Counter("test_total", "Help.")
    with pytest.raises(ValueError, match="cannot decrease"):
        counter.add(-1)
    assert counter.value == 0


def test_counter_render_format():
    counter = Counter("test_total", "Help.")
    counter.add(3)
    assert counter.render() == "# HELP test_total Help.\n# TYPE test_total counter\ntest_total 3\n"


def test_gauge_set_and_get():
    gauge = GaugeVec("g", "Gauge.", ["a", "b"])
    gauge.set(5, "x", "y")
    assert gauge.get("x", "y") == 5
    assert gauge.get("x", "z") == 0


def test_gauge_overwrites_value():
    gauge = GaugeVec("g", "Gauge.", ["a"])
    gauge.set(5, "x")
    gauge.set(7, "x")
    assert gauge.get("x") == 7


def test_gauge_wrong_label_count():
    gauge = GaugeVec("g", "Gauge.", ["a", "b"])
    with pytest.raises(ValueError, match="inconsistent label cardinality"):
        gauge.set(1, "only-one")


def test_gauge_render_contains_labels():
    gauge = GaugeVec("g", "Gauge.", ["a", "b"])
    assert gauge.render() == ""
    gauge.set(5, "x", "y")
    rendered = gauge.render()
    assert 'g{a="x",b="y"} 5\n' in rendered
    assert "# TYPE g gauge\n" in rendered


def test_registry_rejects_duplicates():
    registry = Registry()
    registry.register(Counter("dup_total", "A"))
    with pytest.raises(ValueError, match="duplicate"):
        registry.register(Counter("dup_total", "B"))


def test_registry_render_sorted_by_name():
    registry = Registry()
    registry.register(Counter("b_total", "B"))
    registry.register(Counter("a_total", "A"))
    out = registry.render()
    assert out.index("a_total") < out.index("b_total")


def test_default_registry_holds_error_count():
    out = REGISTRY.render()
    assert "# TYPE juno_error_count counter" in out
    assert "juno_initial_height" in out
    with pytest.raises(ValueError):
        REGISTRY.register(ERROR_COUNT)