from typing import Callable, List, Tuple

# A grade strategy maps a percentage to (letter, gpa on the 4.0 scale).
GradeStrategy = Callable[[float], Tuple[str, float]]

# Inclusive lower bounds, checked from the top down.
GRADE_LADDER: List[Tuple[float, str, float]] = [
    (90.0, 'A', 4.0),
    (80.0, 'B', 3.0),
    (70.0, 'C', 2.0),
    (60.0, 'D', 1.0),
]
FAIL_GRADE = ('F', 0.0)


def make_ladder_strategy(ladder: List[Tuple[float, str, float]],
                         fallback: Tuple[str, float] = FAIL_GRADE) -> GradeStrategy:
    """
    Build a grade strategy from a threshold ladder.

    The highest threshold the percentage reaches wins; anything below every
    threshold (including negative percentages) gets the fallback.
    """
    steps = sorted(ladder, key=lambda step: step[0], reverse=True)

    def strategy(percentage: float) -> Tuple[str, float]:
        for threshold, letter, gpa in steps:
            if percentage >= threshold:
                return letter, gpa
        return fallback

    return strategy


default_grade_strategy = make_ladder_strategy(GRADE_LADDER)


def curved_strategy(bonus: float, base: GradeStrategy = default_grade_strategy) -> GradeStrategy:
    """Grade as if every percentage were `bonus` points higher."""
    def strategy(percentage: float) -> Tuple[str, float]:
        return base(percentage + bonus)

    return strategy


def to_five_point_scale(gpa: float) -> float:
    return gpa * 5.0 / 4.0
