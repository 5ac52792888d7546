"""
Example script demonstrating how to use the slider solver

Solves the GeeTest demo challenge once, or several times in a row to measure
the success rate.
"""

import logging
import sys
import time

from slider_solver.captcha_solver import SliderCaptchaSolver
from slider_solver.common.config import SolverConfig

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


def solve_single_captcha(url: str, config: SolverConfig) -> bool:
    """
    Solve a single CAPTCHA on a webpage

    Args:
        url: URL of the page containing the CAPTCHA
        config: Solver configuration
    """
    solver = SliderCaptchaSolver(config)

    try:
        print(f"\n{'='*60}")
        print(f"Solving CAPTCHA at: {url}")
        print(f"{'='*60}\n")

        start_time = time.time()
        result = solver.attack(url, max_attempts=3)
        elapsed_time = time.time() - start_time

        print("\n" + "="*60)
        print("SOLVE RESULTS")
        print("="*60)
        print(f"Overall Success: {'YES' if result['success'] else 'NO'}")
        print(f"Gap Position: {result['gap_position']}")
        print(f"Piece Position: {result['piece_position']}")
        print(f"Attempts: {result['attempts']}")
        print(f"Time Elapsed: {elapsed_time:.2f} seconds")

        if result.get('error'):
            print(f"\nError: {result['error']}")
        print("="*60 + "\n")

        return result['success']

    finally:
        solver.close()


def solve_multiple_captchas(url: str, config: SolverConfig, num_runs: int = 5):
    """
    Solve several CAPTCHAs in a row to measure the success rate

    Args:
        url: URL of the page containing the CAPTCHA
        config: Solver configuration
        num_runs: Number of independent solves, each in a fresh browser
    """
    print(f"\n{'='*60}")
    print(f"Running {num_runs} solves")
    print(f"{'='*60}\n")

    successes = 0
    total_time = 0

    for i in range(num_runs):
        print(f"\nRun {i+1}/{num_runs}")
        print("-" * 60)

        solver = SliderCaptchaSolver(config)

        try:
            start_time = time.time()
            result = solver.attack(url)
            elapsed_time = time.time() - start_time
            total_time += elapsed_time

            if result['success']:
                successes += 1
                print(f"Success (Time: {elapsed_time:.2f}s)")
            else:
                print(f"Failed (Time: {elapsed_time:.2f}s)")
                if result['error']:
                    print(f"  Error: {result['error']}")

            if i < num_runs - 1:
                time.sleep(2)

        finally:
            solver.close()

    print("\n" + "="*60)
    print("SUMMARY")
    print("="*60)
    print(f"Total Runs: {num_runs}")
    print(f"Successful: {successes}")
    print(f"Failed: {num_runs - successes}")
    print(f"Success Rate: {(successes/num_runs)*100:.1f}%")
    print(f"Average Time: {total_time/num_runs:.2f} seconds")
    print("="*60 + "\n")


if __name__ == "__main__":
    default_url = "https://www.geetest.com/en/demo"

    if len(sys.argv) > 1:
        url = sys.argv[1]
    else:
        url = default_url

    config = SolverConfig.from_env()

    if len(sys.argv) > 2 and sys.argv[2] == "--batch":
        num_runs = int(sys.argv[3]) if len(sys.argv) > 3 else 5
        solve_multiple_captchas(url, config, num_runs)
    else:
        solve_single_captcha(url, config)
