"""
Selenium collaborators of the solver

CanvasCapture reads the challenge canvases, PointerDriver performs the drag
and VerificationObserver waits for the success indicator.
"""

import logging
from typing import Dict, List, Optional

from selenium.common.exceptions import TimeoutException
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .alignment_planner import DragPlan
from .common.drag_tracker import DragTracker
from .common.errors import VerificationTimeoutError
from .computer_vision.image_decoder import data_url_to_bytes

logger = logging.getLogger(__name__)

CANVAS_DATA_URLS_JS = """
return Array.from(document.querySelectorAll(arguments[0]))
    .map(canvas => canvas.toDataURL('image/png'));
"""

BOUNDING_BOX_JS = """
const rect = arguments[0].getBoundingClientRect();
return {x: rect.x, y: rect.y, width: rect.width, height: rect.height};
"""


def element_box(driver, selector: str) -> Dict[str, float]:
    """Viewport bounding box of the first element matching selector"""
    element = driver.find_element(By.CSS_SELECTOR, selector)
    return driver.execute_script(BOUNDING_BOX_JS, element)


class canvases_stable:
    """
    Wait condition: the canvases render the same pixels twice in a row

    Returns the data URLs once two consecutive polls are identical and at
    least `count` non-empty canvases are present.
    """

    def __init__(self, selector: str, count: int = 1):
        self.selector = selector
        self.count = count
        self.previous: Optional[List[str]] = None

    def __call__(self, driver):
        current = driver.execute_script(CANVAS_DATA_URLS_JS, self.selector) or []
        if len(current) < self.count or any(not url or url == 'data:,' for url in current):
            self.previous = None
            return False
        if current == self.previous:
            return current
        self.previous = current
        return False


class CanvasCapture:

    def __init__(self, driver, selector: str = '.geetest_canvas_img canvas'):
        self.driver = driver
        self.selector = selector

    def capture(self) -> List[bytes]:
        urls = self.driver.execute_script(CANVAS_DATA_URLS_JS, self.selector) or []
        return [data_url_to_bytes(url) for url in urls]

    def wait_until_stable(self, timeout: float = 5.0, interval: float = 0.2, count: int = 3) -> List[bytes]:
        """
        Poll the canvases until two consecutive captures are byte-identical

        Raises:
            TimeoutException: If the canvases keep changing for `timeout` seconds
        """
        urls = WebDriverWait(self.driver, timeout, poll_frequency=interval).until(
            canvases_stable(self.selector, count),
            message=f"Canvases '{self.selector}' did not settle within {timeout}s"
        )
        logger.debug(f"Captured {len(urls)} stable canvases")
        return [data_url_to_bytes(url) for url in urls]


class PointerDriver:
    """Mouse down/move/up on viewport coordinates through W3C actions"""

    def __init__(self, driver, tracker: Optional[DragTracker] = None, step_delay: float = 0.01):
        self.driver = driver
        self.tracker = tracker
        self.step_delay = step_delay
        self.position = (0.0, 0.0)
        self.pressed = False

    def _builder(self) -> ActionBuilder:
        return ActionBuilder(self.driver, duration=max(0, int(self.step_delay * 1000)))

    def _record(self, event_type: str, x: float, y: float, phase: str = '') -> None:
        if self.tracker is not None:
            self.tracker.record_event(event_type, x, y, phase)

    def down(self, x: float, y: float) -> None:
        action = self._builder()
        action.pointer_action.move_to_location(round(x), round(y))
        action.pointer_action.pointer_down()
        action.perform()
        self.position = (x, y)
        self.pressed = True
        self._record('mousedown', x, y, 'press')

    def move(self, x: float, y: float, steps: int = 1, phase: str = '') -> None:
        steps = max(1, steps)
        start_x, start_y = self.position
        action = self._builder()
        for i in range(1, steps + 1):
            nx = start_x + (x - start_x) * i / steps
            ny = start_y + (y - start_y) * i / steps
            action.pointer_action.move_to_location(round(nx), round(ny))
            self._record('mousemove', nx, ny, phase)
        action.perform()
        self.position = (x, y)
        logger.debug(f"Moved pointer to ({x:.1f}, {y:.1f}) in {steps} steps")

    def up(self) -> None:
        action = self._builder()
        action.pointer_action.pointer_up()
        action.perform()
        self.pressed = False
        self._record('mouseup', *self.position, 'release')

    def execute(self, drag_plan: DragPlan) -> None:
        self.down(drag_plan.press.x, drag_plan.press.y)
        for phase, waypoint in zip(('coarse', 'fine'), drag_plan.waypoints[1:]):
            self.move(waypoint.x, waypoint.y, waypoint.steps, phase)
        self.up()


class VerificationObserver:

    def __init__(self, driver, selector: str = '.geetest_success_radar_tip_content', poll_frequency: float = 0.1):
        self.driver = driver
        self.selector = selector
        self.poll_frequency = poll_frequency

    def wait_for_success(self, timeout: float = 5.0) -> None:
        try:
            WebDriverWait(self.driver, timeout, poll_frequency=self.poll_frequency).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, self.selector))
            )
        except TimeoutException as e:
            raise VerificationTimeoutError(self.selector, timeout) from e

    def succeeded(self, timeout: float = 5.0) -> bool:
        try:
            self.wait_for_success(timeout)
        except VerificationTimeoutError as e:
            logger.info(f"Verification failed: {e}")
            return False
        logger.info("Success indicator appeared")
        return True
