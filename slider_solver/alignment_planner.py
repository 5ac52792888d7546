"""
Drag planning

A solve drags the slider handle in two legs. The coarse leg covers most of
the distance between the piece and the gap with many small steps. The piece
is then measured again, because its rendered position lags behind the
pointer, and a short fine leg moves it by what is left.
"""

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

from .computer_vision.position_estimator import Position

logger = logging.getLogger(__name__)


class Waypoint(NamedTuple):
    x: float
    y: float
    steps: int


@dataclass(frozen=True)
class DragPlan:
    waypoints: Tuple[Waypoint, ...]

    @property
    def press(self) -> Waypoint:
        return self.waypoints[0]

    @property
    def coarse(self) -> Waypoint:
        return self.waypoints[1]

    @property
    def fine(self) -> Waypoint:
        return self.waypoints[-1]

    @property
    def fine_delta(self) -> Tuple[float, float]:
        return (self.fine.x - self.coarse.x, self.fine.y - self.coarse.y)

    @property
    def total_dx(self) -> float:
        return self.fine.x - self.press.x

    def __iter__(self):
        return iter(self.waypoints)

    def __len__(self):
        return len(self.waypoints)


def _check_position(name: str, position) -> None:
    if position.x < 0 or position.y < 0:
        raise ValueError(f"{name} must not be negative, got ({position.x}, {position.y})")


def _check_steps(name: str, steps: int) -> None:
    if steps < 1:
        raise ValueError(f"{name} must be at least 1, got {steps}")


def plan(piece_pos: Position, gap_pos: Position, current_pointer, coarse_steps: int = 25,
         fine_steps: int = 5, holdback: float = 10, lift: float = 0) -> DragPlan:
    """
    Plan the press, coarse and fine waypoints of a slider drag

    Args:
        piece_pos: Current centre of the draggable piece (image coordinates)
        gap_pos: Centre of the gap (image coordinates)
        current_pointer: Pointer position on the slider handle (page coordinates)
        coarse_steps: Interpolated moves for the coarse leg
        fine_steps: Interpolated moves for the fine leg
        holdback: Pixels of the distance left for the fine leg
        lift: Vertical offset of the pointer during the coarse leg

    Returns:
        DragPlan whose fine leg assumes the piece follows the pointer 1:1
    """
    _check_position("piece_pos", piece_pos)
    _check_position("gap_pos", gap_pos)
    _check_position("current_pointer", current_pointer)
    _check_steps("coarse_steps", coarse_steps)
    _check_steps("fine_steps", fine_steps)
    if holdback < 0:
        raise ValueError(f"holdback must not be negative, got {holdback}")

    delta = gap_pos.x - piece_pos.x
    coarse_dx = delta - math.copysign(min(holdback, abs(delta)), delta)

    press = Waypoint(float(current_pointer.x), float(current_pointer.y), 0)
    coarse = Waypoint(press.x + coarse_dx, press.y - lift, coarse_steps)

    predicted_piece_x = piece_pos.x + coarse_dx
    fine = Waypoint(coarse.x + (gap_pos.x - predicted_piece_x), press.y, fine_steps)

    logger.debug(f"Planned drag: delta={delta:+}px, coarse={coarse_dx:+.1f}px, "
                 f"fine={fine.x - coarse.x:+.1f}px")
    return DragPlan((press, coarse, fine))


def correct(drag_plan: DragPlan, measured_piece: Position, gap_pos: Position,
            fine_steps: Optional[int] = None) -> DragPlan:
    """
    Replace the fine leg using the piece position measured after the coarse leg

    The fine leg nudges the pointer by gap.x - measured.x and brings it back
    to the height it was pressed at.
    """
    _check_position("measured_piece", measured_piece)
    _check_position("gap_pos", gap_pos)
    steps = drag_plan.fine.steps if fine_steps is None else fine_steps
    _check_steps("fine_steps", steps)

    residual = gap_pos.x - measured_piece.x
    fine = Waypoint(drag_plan.coarse.x + residual, drag_plan.press.y, steps)
    logger.debug(f"Corrected fine leg: piece at {measured_piece.x}, gap at {gap_pos.x}, "
                 f"residual={residual:+}px")
    return DragPlan(drag_plan.waypoints[:-1] + (fine,))
