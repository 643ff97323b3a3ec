"""Tests for Store."""

from scopefx import Scope, Store, autorun, reaction


class TestStore:
    def test_creation_from_schema(self):
        s = Store({"x": 10, "y": "hello"})
        assert s.get("x") == 10
        assert s.get("y") == "hello"

    def test_initial_overrides(self):
        s = Store({"x": 10, "y": "hello"}, initial={"x": 99})
        assert s.get("x") == 99
        assert s.get("y") == "hello"

    def test_get_nonexistent(self):
        s = Store({"x": 1})
        assert s.get("nope") is None

    def test_set(self):
        s = Store({"x": 0})
        s.set("x", 42)
        assert s.get("x") == 42

    def test_set_nonexistent_is_noop(self):
        s = Store({"x": 0})
        s.set("nope", 99)  # no-op, no error

    def test_update(self):
        s = Store({"x": 0, "y": 0})
        s.update({"x": 1, "y": 2})
        assert (s.get("x"), s.get("y")) == (1, 2)

    def test_reactive_tracking(self):
        s = Store({"count": 0})
        log = []
        autorun(lambda: log.append(s.get("count")))
        assert log == [0]
        s.set("count", 1)
        assert log == [0, 1]

    def test_reconcile_adds_keys(self):
        s = Store({"x": 1})
        s.reconcile({"x": 1, "z": 99}, lambda store: None)
        assert s.get("z") == 99
        assert s.get("x") == 1  # preserved

    def test_reconcile_preserves_values(self):
        s = Store({"x": 1})
        s.set("x", 42)
        s.reconcile({"x": 1}, lambda store: None)
        assert s.get("x") == 42

    def test_reconcile_captures_reactions(self):
        s = Store({"x": 0})

        def setup(store):
            reaction(lambda: store.get("x"), lambda v: None)
            autorun(lambda: store.get("x"))

        s.reconcile({"x": 0}, setup)
        assert len(s.reactions.children) == 2
        assert s.reactions.detached

    def test_reconcile_stops_old_reactions(self):
        s = Store({"x": 0})
        log = []

        def setup(store):
            reaction(lambda: store.get("x"), lambda v: log.append(v))

        s.reconcile({"x": 0}, setup)
        s.set("x", 1)
        assert log == [1]
        first = s.reactions

        # Reconcile again — old reaction should be stopped
        log2 = []

        def setup2(store):
            reaction(lambda: store.get("x"), lambda v: log2.append(v))

        s.reconcile({"x": 0}, setup2)
        s.set("x", 2)
        assert log2 == [2]
        assert log == [1]  # old reaction didn't fire
        assert not first.active

    def test_reconcile_inside_scope_is_not_captured_by_it(self):
        """Reactions belong to the store's scope, not the caller's."""
        store = Store({"x": 0})
        outer = Scope()
        outer.run(lambda on_cleanup: store.reconcile({"x": 0}, lambda st: autorun(lambda: st.get("x"))))
        assert outer.children == ()
        outer.stop()
        assert store.reactions.active

    def test_stop(self):
        s = Store({"x": 0})
        log = []

        def setup(store):
            reaction(lambda: store.get("x"), lambda v: log.append(v))

        s.reconcile({"x": 0}, setup)
        s.set("x", 1)
        assert log == [1]

        s.stop()
        s.set("x", 2)
        assert log == [1]  # reactions stopped
        assert not s.active

    def test_stopped_with_enclosing_scope(self):
        log = []
        scope = Scope()

        def build(on_cleanup):
            store = Store({"x": 0})
            store.reconcile({"x": 0}, lambda st: reaction(lambda: st.get("x"), lambda v: log.append(v)))
            return store

        store = scope.run(build)
        assert scope.children == (store,)
        scope.stop()
        store.set("x", 5)
        assert log == []
        assert not store.active

    def test_stopped_alone_leaves_enclosing_scope(self):
        scope = Scope()
        store, other = scope.run(lambda on_cleanup: (Store({"x": 0}), Store({"y": 0})))
        store.stop()
        assert scope.children == (other,)
        scope.stop()
        assert not other.active
