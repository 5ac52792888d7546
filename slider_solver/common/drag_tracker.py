import time
import uuid
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ['session_id', 'timestamp', 'time_since_start', 'time_since_last_event', 'event_type',
                 'client_x', 'client_y', 'velocity', 'phase', 'success']


class DragTracker:
    """Records the pointer events of each drag"""

    def __init__(self, trace_dir: Optional[Path] = None):
        self.trace_dir = Path(trace_dir) if trace_dir else None
        self.events: List[Dict] = []
        self.session_id: Optional[str] = None
        self.session_start_time: Optional[float] = None
        self._last_time: Optional[float] = None
        self._last_position: Optional[Tuple[float, float]] = None

    def start_new_session(self) -> str:
        self.session_id = f'solve_{int(time.time() * 1000)}_{str(uuid.uuid4())[:8]}'
        self.session_start_time = time.time()
        self.events = []
        self._last_time = self.session_start_time
        self._last_position = None
        logger.debug(f'Started drag session {self.session_id}')
        return self.session_id

    def record_event(self, event_type: str, x: float, y: float, phase: str = '',
                     now: Optional[float] = None) -> Dict:
        if self.session_id is None:
            self.start_new_session()
        now = time.time() if now is None else now
        last_position = self._last_position or (x, y)
        time_since_start = (now - self.session_start_time) * 1000
        time_since_last = (now - self._last_time) * 1000
        distance = np.sqrt((x - last_position[0]) ** 2 + (y - last_position[1]) ** 2)
        velocity = distance / time_since_last * 1000 if time_since_last > 0 else 0.0
        event = {'time_since_start': time_since_start, 'time_since_last_event': time_since_last,
                 'event_type': event_type, 'client_x': x, 'client_y': y, 'velocity': float(velocity),
                 'phase': phase}
        self.events.append(event)
        self._last_time = now
        self._last_position = (x, y)
        return event

    def to_frame(self, success: Optional[bool] = None) -> pd.DataFrame:
        df = pd.DataFrame(self.events)
        if len(df) == 0:
            return pd.DataFrame(columns=TRACE_COLUMNS)
        df['session_id'] = self.session_id
        df['timestamp'] = (self.session_start_time * 1000 + df['time_since_start']).astype(int)
        df['success'] = success
        return df[[col for col in TRACE_COLUMNS if col in df.columns]]

    def save_csv(self, success: bool) -> Optional[Path]:
        if self.trace_dir is None:
            return None
        if not self.events:
            logger.warning(f'No drag events to save for session {self.session_id}')
            return None
        df = self.to_frame(success)
        self.trace_dir.mkdir(parents=True, exist_ok=True)
        output_file = self.trace_dir / 'drag_traces.csv'
        file_exists = output_file.exists()
        df.to_csv(output_file, mode='a', header=not file_exists, index=False)
        logger.info(f'Saved {len(df)} drag events to {output_file} (session {self.session_id}, success={success})')
        return output_file
