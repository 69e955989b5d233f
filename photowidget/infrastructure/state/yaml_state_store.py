"""Widget state store persisted as a YAML file.

Each entry maps a resource key to the image fields a widget draws from.
Writes go through a temp file and os.replace so readers never see a torn
file. Consumers subscribe to be told when to redraw.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Union

import yaml

from photowidget.domain.interfaces.state_store import StateListener, WidgetStateStore
from photowidget.domain.models.common import WidgetImageState
from photowidget.domain.models.errors import StateCorruptError

logger = logging.getLogger(__name__)


class YamlWidgetStateStore(WidgetStateStore):
    """WidgetStateStore backed by a YAML document on disk."""

    def __init__(self, state_file: Union[str, Path]):
        self.state_file = Path(state_file)
        self._listeners: List[StateListener] = []
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"YamlWidgetStateStore initialized at {self.state_file}")

    def _load(self, strict: bool = False) -> Dict[str, WidgetImageState]:
        """Reads the state file.

        Args:
            strict: Raise StateCorruptError on an unparsable file instead of
                reading it as empty. Writers load strictly so a corrupt file is
                never replaced by a document missing the other entries.
        """
        if not self.state_file.exists():
            return {}
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            if strict:
                raise StateCorruptError(str(self.state_file), e) from e
            logger.error(f"Widget state file {self.state_file} is corrupt, reading it as empty: {e}")
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            if strict:
                raise StateCorruptError(str(self.state_file), "top level is not a mapping")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, dict)}

    def _dump(self, state: Dict[str, WidgetImageState]) -> None:
        temp_file = self.state_file.with_suffix('.tmp')
        with open(temp_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(state, f, default_flow_style=False, sort_keys=True)
        os.replace(str(temp_file), str(self.state_file))

    async def write_state(self, widget_key: str, fields: Mapping[str, str]) -> None:
        # No await between load and dump: writes from one event loop never interleave
        state = self._load(strict=True)
        state[widget_key] = dict(fields)
        self._dump(state)
        logger.debug(f"Wrote widget state for {widget_key}: {dict(fields)}")

    async def refresh_all(self) -> None:
        snapshot = self._load()
        logger.debug(f"Refreshing {len(self._listeners)} widget consumer(s)")
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                # Keep notifying the remaining listeners
                logger.error(f"Widget state listener {listener!r} failed: {e}", exc_info=True)

    def read_state(self) -> Dict[str, WidgetImageState]:
        return self._load()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
