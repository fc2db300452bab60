# quest_engine/services/seeded_selector.py
import hashlib
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

_MASK64 = (1 << 64) - 1
_GOLDEN_GAMMA = 0x9E3779B97F4A7C15


def derive_seed(date_string: str, salt: str = "") -> int:
    """
    日付文字列から64bitのシードを作る。
    同じ入力なら実行環境に関係なく同じ値になる。
    """
    source = f"{date_string}:{salt}" if salt else date_string
    digest = hashlib.sha256(source.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class SeededRandom:
    """
    splitmix64 による決定的な乱数生成器。
    クエスト選択・シャッフル・パーソナライズは全てこれ1つで行い、
    標準の random モジュールは使わない。
    """

    def __init__(self, seed: int):
        self.seed = seed & _MASK64
        self._state = self.seed

    @classmethod
    def from_date(cls, date_string: str, salt: str = "") -> "SeededRandom":
        return cls(derive_seed(date_string, salt))

    def next_uint64(self) -> int:
        self._state = (self._state + _GOLDEN_GAMMA) & _MASK64
        z = self._state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
        return z ^ (z >> 31)

    def random(self) -> float:
        """[0, 1) の浮動小数 (53bit精度)"""
        return (self.next_uint64() >> 11) / float(1 << 53)

    def randbelow(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return int(self.random() * n)

    def choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[self.randbelow(len(items))]

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher-Yates で並べ替えた新しいリストを返す"""
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self.randbelow(i + 1)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled


def weighted_pick(items: Sequence[T], weight_fn: Callable[[T], float], rng: SeededRandom) -> Optional[T]:
    """
    重み付き抽選。
    合計重み × random() から順に重みを引き、残りが 0 以下になった最初の要素を返す。
    候補なし (または重み合計 0) の場合は None。
    """
    if not items:
        return None

    weights = [max(0.0, float(weight_fn(item))) for item in items]
    total_weight = sum(weights)
    if total_weight <= 0:
        return None

    remainder = rng.random() * total_weight
    for item, weight in zip(items, weights):
        remainder -= weight
        if remainder <= 0 and weight > 0:
            return item

    # 浮動小数誤差で抜けた場合は重みのある最後の要素
    for item, weight in zip(reversed(items), reversed(weights)):
        if weight > 0:
            return item
    return None
