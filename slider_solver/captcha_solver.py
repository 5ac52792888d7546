from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.chrome.options import Options
from selenium.common.exceptions import TimeoutException, WebDriverException
import argparse
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from .alignment_planner import DragPlan, correct, plan
from .browser import CanvasCapture, PointerDriver, VerificationObserver, element_box
from .common.config import SolverConfig
from .common.drag_tracker import DragTracker
from .common.errors import DecodeError, DimensionMismatchError, VisionError
from .computer_vision.image_decoder import Bitmap, decode, encode_png
from .computer_vision.pixel_diff import DiffResult, diff
from .computer_vision.position_estimator import Position, estimate

logger = logging.getLogger(__name__)

# DOM order of the challenge canvases
PUZZLE_CANVAS = 0
SLICE_CANVAS = 1
REFERENCE_CANVAS = 2


@dataclass(frozen=True)
class SolveDecision:
    gap_position: Position
    piece_position: Position
    drag_plan: DragPlan


def _save_debug(config: SolverConfig, name: str, bitmap: Bitmap) -> None:
    if config.debug_dir is None:
        return
    debug_dir = Path(config.debug_dir)
    debug_dir.mkdir(parents=True, exist_ok=True)
    (debug_dir / name).write_bytes(encode_png(bitmap))
    logger.debug(f"Wrote {debug_dir / name}")


def locate_gap(reference: Bitmap, puzzle: Bitmap, config: SolverConfig) -> Tuple[Position, DiffResult]:
    result = diff(reference, puzzle, threshold=config.diff_threshold, include_aa=config.include_aa)
    _save_debug(config, 'diff.png', result.image)
    gap = estimate(result.image, config.gap_pipeline())
    logger.info(f"Gap found at ({gap.x}, {gap.y}) from {result.diff_count} different pixels")
    return gap, result


def locate_piece(piece: Bitmap, config: SolverConfig) -> Position:
    position = estimate(piece, config.piece_pipeline())
    logger.info(f"Puzzle piece found at ({position.x}, {position.y})")
    return position


def solve(reference_image: bytes, puzzle_image: bytes, slice_image: Optional[bytes] = None,
          pointer: Optional[Position] = None, config: Optional[SolverConfig] = None) -> SolveDecision:
    """
    Decide where the gap is and how to drag the piece into it

    No browser is involved: executing the returned plan is up to the caller.

    Args:
        reference_image: Encoded background without the gap
        puzzle_image: Encoded background with the gap cut out
        slice_image: Encoded canvas holding only the draggable piece. When
            missing the piece is assumed at the left edge, level with the gap.
        pointer: Pointer position on the slider handle, defaults to (0, 0)
        config: Solver configuration, defaults to SolverConfig()

    Returns:
        SolveDecision with the gap position, piece position and drag plan

    Raises:
        DecodeError, DimensionMismatchError, NoRegionFoundError, DegenerateRegionError
    """
    config = config or SolverConfig()
    reference = decode(reference_image)
    puzzle = decode(puzzle_image)
    _save_debug(config, 'reference.png', reference)
    _save_debug(config, 'puzzle.png', puzzle)

    gap, _ = locate_gap(reference, puzzle, config)
    if slice_image is not None:
        piece = locate_piece(decode(slice_image), config)
    else:
        piece = Position(0, gap.y)

    drag_plan = plan(piece, gap, pointer or Position(0, 0), coarse_steps=config.coarse_steps,
                     fine_steps=config.fine_steps, holdback=config.coarse_holdback)
    return SolveDecision(gap_position=gap, piece_position=piece, drag_plan=drag_plan)


class SliderCaptchaSolver:
    def __init__(self, config: Optional[SolverConfig] = None, driver=None):

        self.config = config or SolverConfig()
        self.driver = driver
        self.tracker = DragTracker(self.config.trace_dir)
        self.last_error: Optional[Exception] = None
        self.last_decision: Optional[SolveDecision] = None

        if self.driver is None:
            self.setup_driver()

        self.capture = CanvasCapture(self.driver, self.config.canvas_selector)
        self.pointer = PointerDriver(self.driver, self.tracker, self.config.step_delay)
        self.observer = VerificationObserver(self.driver, self.config.success_selector)

    def setup_driver(self):
        chrome_options = Options()
        if self.config.headless:
            chrome_options.add_argument('--headless=new')
        chrome_options.add_argument('--no-sandbox')
        chrome_options.add_argument('--disable-dev-shm-usage')
        chrome_options.add_argument('--window-size=1366,768')
        chrome_options.add_argument('--disable-blink-features=AutomationControlled')
        chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
        chrome_options.add_experimental_option('useAutomationExtension', False)

        if self.config.browser_binary:
            chrome_options.binary_location = self.config.browser_binary
            logger.info(f"Using browser binary: {self.config.browser_binary}")

        try:
            if self.config.chromedriver_path:
                from selenium.webdriver.chrome.service import Service
                service = Service(self.config.chromedriver_path)
                self.driver = webdriver.Chrome(service=service, options=chrome_options)
            else:
                self.driver = webdriver.Chrome(options=chrome_options)

            self.driver.execute_script("Object.defineProperty(navigator, 'webdriver', {get: () => undefined})")
            logger.info("WebDriver initialized successfully")
        except WebDriverException as e:
            logger.error(f"Failed to initialize WebDriver: {e}")
            raise

    def open_challenge(self, url: str) -> None:
        """Load the GeeTest demo page and bring up the slide challenge"""
        wait = WebDriverWait(self.driver, self.config.page_timeout)
        logger.info(f"Navigating to {url}")
        self.driver.get(url)

        wait.until(EC.element_to_be_clickable((By.CSS_SELECTOR, '.tab-item.tab-item-1'))).click()
        wait.until(EC.element_to_be_clickable((By.CSS_SELECTOR, '[aria-label="Click to verify"]'))).click()
        wait.until(EC.visibility_of_element_located((By.CSS_SELECTOR, self.config.canvas_selector)))
        logger.info("Slider challenge is visible")

    def handle_center(self) -> Tuple[Position, Dict[str, float]]:
        box = element_box(self.driver, self.config.handle_selector)
        center = Position(round(box['x'] + box['width'] / 2), round(box['y'] + box['height'] / 2))
        return center, box

    def _measure_piece(self) -> Position:
        images = self.capture.capture()
        return locate_piece(decode(images[SLICE_CANVAS]), self.config)

    def solve_challenge(self) -> bool:
        """
        Run one solve attempt against the challenge on the current page

        Returns:
            True when the success indicator appeared. Any failure, including a
            vision error that deserves a retry, returns False and is kept in
            `last_error`.
        """
        config = self.config
        self.last_error = None
        self.last_decision = None
        success = False
        self.tracker.start_new_session()

        try:
            images = self.capture.wait_until_stable(config.stable_timeout, config.stable_interval, count=3)
            puzzle = decode(images[PUZZLE_CANVAS])
            reference = decode(images[REFERENCE_CANVAS])
            _save_debug(config, 'reference.png', reference)
            _save_debug(config, 'puzzle.png', puzzle)

            gap, _ = locate_gap(reference, puzzle, config)
            piece = locate_piece(decode(images[SLICE_CANVAS]), config)

            start, box = self.handle_center()
            drag_plan = plan(piece, gap, start, coarse_steps=config.coarse_steps, fine_steps=config.fine_steps,
                             holdback=config.coarse_holdback, lift=box['height'] / 6)

            self.pointer.down(drag_plan.press.x, drag_plan.press.y)
            self.pointer.move(drag_plan.coarse.x, drag_plan.coarse.y, drag_plan.coarse.steps, 'coarse')

            time.sleep(config.settle_delay)
            measured = self._measure_piece()
            drag_plan = correct(drag_plan, measured, gap)

            self.pointer.move(drag_plan.fine.x, drag_plan.fine.y, drag_plan.fine.steps, 'fine')
            self.pointer.up()
            self.last_decision = SolveDecision(gap_position=gap, piece_position=piece, drag_plan=drag_plan)

            logger.info(f"Dragged {drag_plan.total_dx:+.1f}px (fine correction {drag_plan.fine_delta[0]:+.1f}px)")
            success = self.observer.succeeded(config.verification_timeout)

        except VisionError as e:
            self.last_error = e
            logger.warning(f"Vision pipeline failed, recapture and retry: {e}")
        except (DecodeError, DimensionMismatchError) as e:
            self.last_error = e
            logger.error(f"Unusable challenge images: {e}")
        except TimeoutException as e:
            self.last_error = e
            logger.warning(f"Challenge canvases never settled: {e.msg}")
        except ValueError as e:
            self.last_error = e
            logger.warning(f"Could not plan the drag: {e}")
        except (WebDriverException, IndexError, KeyError) as e:
            self.last_error = e
            logger.error(f"Error solving slider puzzle: {e}")
        finally:
            if self.pointer.pressed:
                try:
                    self.pointer.up()
                except WebDriverException as e:
                    logger.warning(f"Could not release pointer: {e}")

        self.tracker.save_csv(success)
        logger.info(f"Slider captcha {'solved' if success else 'not solved'}")
        return success

    def attack(self, url: str, max_attempts: int = 1) -> Dict:

        result = {
            'success': False,
            'attempts': 0,
            'error': None,
            'gap_position': None,
            'piece_position': None,
        }

        try:
            self.open_challenge(url)
        except (TimeoutException, WebDriverException) as e:
            logger.error(f"Could not open challenge: {e}")
            result['error'] = str(e)
            return result

        for attempt in range(1, max_attempts + 1):
            result['attempts'] = attempt
            logger.info(f"Attempt {attempt}/{max_attempts}")
            success = self.solve_challenge()
            if self.last_decision is not None:
                result['gap_position'] = tuple(self.last_decision.gap_position)
                result['piece_position'] = tuple(self.last_decision.piece_position)

            if success:
                result['success'] = True
                result['error'] = None
                break

            result['error'] = str(self.last_error) if self.last_error else 'verification failed'
            if not isinstance(self.last_error, VisionError) or attempt == max_attempts:
                break

            try:
                self.open_challenge(url)
            except (TimeoutException, WebDriverException) as e:
                logger.error(f"Could not reopen challenge: {e}")
                result['error'] = str(e)
                break

        logger.info(f"Overall attack {'succeeded' if result['success'] else 'failed'} after {result['attempts']} attempt(s)")
        return result

    def close(self):

        if self.driver:
            self.driver.quit()
            logger.info("Browser closed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Slider CAPTCHA solver')
    parser.add_argument('url', nargs='?', default='https://www.geetest.com/en/demo', help='Page hosting the challenge')
    parser.add_argument('--attempts', type=int, default=1, help='Attempts when the vision pipeline fails')
    parser.add_argument('--headless', dest='headless', action='store_true', default=None, help='Run Chrome headless')
    parser.add_argument('--headed', dest='headless', action='store_false', help='Show the browser window')
    parser.add_argument('--debug-dir', type=Path, default=None, help='Write captured and diff images here')
    parser.add_argument('--trace-dir', type=Path, default=None, help='Append drag traces to a CSV here')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')

    config = SolverConfig.from_env(headless=args.headless, debug_dir=args.debug_dir, trace_dir=args.trace_dir)
    solver = SliderCaptchaSolver(config)

    try:
        result = solver.attack(args.url, max_attempts=args.attempts)
    finally:
        solver.close()

    print(f"Captcha {'solved' if result['success'] else 'not solved'} after {result['attempts']} attempt(s)")
    if result.get('error'):
        print(f"Error: {result['error']}")
    return 0 if result['success'] else 1


if __name__ == "__main__":
    raise SystemExit(main())
