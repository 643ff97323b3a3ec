"""Tests for Reaction, autorun, and reaction."""

from scopefx import Observable, Scope, autorun, reaction


class TestAutorun:
    def test_runs_immediately(self):
        o = Observable(10)
        log = []
        autorun(lambda: log.append(o.get()))
        assert log == [10]

    def test_reruns_on_change(self):
        o = Observable(10)
        log = []
        autorun(lambda: log.append(o.get()))
        o.set(20)
        assert log == [10, 20]

    def test_stop(self):
        o = Observable(10)
        log = []
        r = autorun(lambda: log.append(o.get()))
        r.stop()
        o.set(20)
        assert log == [10]  # no additional run
        assert not r.active

    def test_stop_is_idempotent(self):
        r = autorun(lambda: None)
        r.stop()
        r.stop()
        assert not r.active

    def test_captured_before_first_run(self):
        """The reaction is registered before its first run."""
        s = Scope()
        created = []

        def setup(on_cleanup):
            def fn():
                created.append(s.children)
            autorun(fn)

        s.run(setup)
        assert len(created[0]) == 1

    def test_rerun_does_not_register_again(self):
        o = Observable(0)
        s = Scope()
        s.run(lambda on_cleanup: autorun(lambda: o.get()))
        assert len(s.children) == 1
        o.set(1)  # re-run happens outside any scope
        assert len(s.children) == 1


class TestReaction:
    def test_no_initial_effect(self):
        """Without fire_immediately, effect doesn't run on setup."""
        o = Observable("a")
        effects = []
        reaction(lambda: o.get(), lambda v: effects.append(v))
        assert effects == []

    def test_fires_on_change(self):
        o = Observable("a")
        effects = []
        reaction(lambda: o.get(), lambda v: effects.append(v))
        o.set("b")
        assert effects == ["b"]

    def test_fire_immediately(self):
        o = Observable("a")
        effects = []
        reaction(lambda: o.get(), lambda v: effects.append(v), fire_immediately=True)
        assert effects == ["a"]

    def test_dedup_effect(self):
        """Effect only fires when data_fn result actually changes."""
        o = Observable(1)
        effects = []
        # data_fn always returns "even" or "odd"
        reaction(
            lambda: "even" if o.get() % 2 == 0 else "odd",
            lambda v: effects.append(v),
        )
        o.set(3)  # still odd
        assert effects == []  # data_fn returned same "odd"
        o.set(4)  # now even
        assert effects == ["even"]

    def test_stop(self):
        o = Observable(1)
        effects = []
        r = reaction(lambda: o.get(), lambda v: effects.append(v))
        o.set(2)
        assert effects == [2]
        r.stop()
        o.set(3)
        assert effects == [2]  # no more effects

    def test_stopped_with_scope(self):
        o = Observable(1)
        effects = []
        s = Scope()
        s.run(lambda on_cleanup: reaction(lambda: o.get(), lambda v: effects.append(v)))
        s.stop()
        o.set(2)
        assert effects == []
        assert o.observer_count == 0

    def test_repr(self):
        def fetch():
            return 1

        r = reaction(fetch, lambda v: None)
        assert "fetch" in repr(r)
        assert "active" in repr(r)
        r.stop()
        assert "stopped" in repr(r)
