"""Hot-reload-aware store. Opt-in — import only if you need hot-reload support."""

import logging

from scopefx.scope import Scope
from scopefx.store import Store

logger = logging.getLogger("scopefx.hot_reload")


class HotReloadStore(Store):
    """Store that survives module reloads via safe reconciliation.

    Same API as Store. Adds:
    - Exception safety: reconcile catches and logs reaction setup failures
    - Logging: reconcile events are clearly logged
    - Degraded operation: if reconcile fails, store continues with values intact
    """

    def reconcile(self, schema, setup_fn):
        """Safe reconciliation — catches exceptions, logs, never crashes."""
        new_keys = self._add_keys(schema)

        old_count = len(self._reactions.children) if self._reactions is not None else 0
        try:
            self._stop_reactions()
        except Exception:
            logger.exception("Failed to stop previous reactions during reconcile")

        scope = Scope(detached=True)
        try:
            scope.run(lambda on_cleanup: setup_fn(self))
        except Exception:
            logger.exception("Failed to register reactions during reconcile")
            # Whatever setup_fn created before failing must not keep firing
            try:
                scope.stop()
            except Exception:
                logger.exception("Failed to stop partial reactions")
            return

        self._reactions = scope
        logger.info(
            "Reconciled: %d new keys, %d->%d reactions",
            len(new_keys), old_count, len(scope.children),
        )
