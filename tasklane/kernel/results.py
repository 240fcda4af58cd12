"""
Tasklane - Result Generator
"""
import random
from typing import Optional


RESULT_CATALOG = (
    "🥤 Bubble tea",
    "🍕 Pizza",
    "🍔 Burger",
    "🥗 Salad",
    "🍣 Sushi",
    "🍝 Pasta",
    "🍦 Ice cream",
    "🌮 Tacos",
    "🍜 Pad thai",
    "🍢 Korean BBQ",
    "🍲 Pho",
)


def generate_result(rng: Optional[random.Random] = None) -> str:
    """Pick a completion label uniformly at random."""
    return (rng or random).choice(RESULT_CATALOG)
