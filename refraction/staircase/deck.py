import random

from refraction.tracking.frames import Direction


class DirectionDeck:
    """Shuffled bag of the four directions, refilled when empty.

    Never yields the same direction twice in a row, including across a
    refill.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng if rng else random.Random()
        self._bag = []
        self._last = None

    def reset(self):
        self._bag = []
        self._last = None

    def _refill(self):
        bag = list(Direction)
        self._rng.shuffle(bag)
        # bag[-1] is drawn first
        if bag[-1] is self._last:
            swap = self._rng.randrange(len(bag) - 1)
            bag[-1], bag[swap] = bag[swap], bag[-1]
        self._bag = bag

    def draw(self) -> Direction:
        if not self._bag:
            self._refill()
        self._last = self._bag.pop()
        return self._last
