"""
Hard constraints for the partition-function recursions.

A hard constraint decides *whether* a decomposition may be used at all:
for every pair `(i, j)` a bit set of loop contexts in which the pair is
allowed, and for every position the length of the longest run starting
there that may stay unpaired in each loop context. A fresh
:class:`HardConstraints` permits every canonical pair whose hairpin is long
enough and leaves every position free to be unpaired.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Dict, Optional

import numpy as np

from rna_pf_fold.rules.constraints import MIN_HAIRPIN_UNPAIRED, can_pair


class LoopContext(IntFlag):
    """Loop contexts a base pair (or an unpaired base) may appear in."""
    NONE = 0
    EXT_LOOP = 1
    HP_LOOP = 2
    INT_LOOP = 4
    INT_LOOP_ENC = 8
    MB_LOOP = 16
    MB_LOOP_ENC = 32
    ALL = 63


# Unpaired-run tables kept per loop context.
UNPAIRED_CONTEXTS = (
    LoopContext.EXT_LOOP,
    LoopContext.HP_LOOP,
    LoopContext.INT_LOOP,
    LoopContext.MB_LOOP,
)


@dataclass(slots=True)
class HardConstraints:
    """
    Pair-context flags and maximal unpaired runs for one fold compound.

    Attributes
    ----------
    seq_len : int
        Sequence (alignment) length `n`.
    matrix : np.ndarray
        ``uint8`` array of shape ``(n + 2, n + 2)``; ``matrix[i, j]`` holds the
        :class:`LoopContext` bits in which `(i, j)` may pair (symmetric).
    unpaired_mask : np.ndarray
        Boolean array of shape ``(4, n + 2)``; row `c` marks positions that
        may be unpaired in ``UNPAIRED_CONTEXTS[c]``.
    up_ext, up_hp, up_int, up_ml : np.ndarray
        ``up_x[i]`` is the length of the longest run starting at `i` whose
        positions may all be unpaired in that loop context; ``up_x[n + 1] = 0``.
    """
    seq_len: int
    matrix: np.ndarray
    unpaired_mask: np.ndarray
    up_ext: Optional[np.ndarray] = None
    up_hp: Optional[np.ndarray] = None
    up_int: Optional[np.ndarray] = None
    up_ml: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.refresh_unpaired_runs()

    # --- Builders ---
    @classmethod
    def permissive(cls, seq_len: int) -> "HardConstraints":
        """Constraints with an empty pair matrix and every position free to be unpaired."""
        matrix = np.zeros((seq_len + 2, seq_len + 2), dtype=np.uint8)
        unpaired_mask = np.zeros((len(UNPAIRED_CONTEXTS), seq_len + 2), dtype=bool)
        unpaired_mask[:, 1:seq_len + 1] = True

        return cls(seq_len=seq_len, matrix=matrix, unpaired_mask=unpaired_mask)

    @classmethod
    def from_pair_rule(
        cls,
        seq_len: int,
        allow_pair: Callable[[int, int], bool],
        *,
        min_loop_size: int = MIN_HAIRPIN_UNPAIRED,
        circular: bool = False,
    ) -> "HardConstraints":
        """
        Build the default constraints from a positional pairing rule.

        Every `(i, j)` with ``j - i > min_loop_size`` and ``allow_pair(i, j)``
        is permitted in all loop contexts. For circular molecules the loop
        on the other side of the pair must be long enough as well.

        Parameters
        ----------
        seq_len : int
            Sequence (alignment) length.
        allow_pair : Callable[[int, int], bool]
            Predicate over 1-based positions.
        min_loop_size : int
            Minimum hairpin size ("turn").
        circular : bool
            Whether the molecule is circular.
        """
        hc = cls.permissive(seq_len)
        for i in range(1, seq_len + 1):
            for j in range(i + min_loop_size + 1, seq_len + 1):
                if circular and (seq_len - j + i - 1) < min_loop_size:
                    continue
                if allow_pair(i, j):
                    hc.matrix[i, j] = hc.matrix[j, i] = int(LoopContext.ALL)

        return hc

    @classmethod
    def from_sequence(
        cls,
        seq: str,
        *,
        min_loop_size: int = MIN_HAIRPIN_UNPAIRED,
        circular: bool = False,
    ) -> "HardConstraints":
        """Default constraints for a single sequence: canonical pairs only."""
        return cls.from_pair_rule(
            len(seq),
            lambda i, j: can_pair(seq[i - 1], seq[j - 1]),
            min_loop_size=min_loop_size,
            circular=circular,
        )

    @classmethod
    def from_dot_bracket(
        cls,
        seq: str,
        constraint: str,
        *,
        min_loop_size: int = MIN_HAIRPIN_UNPAIRED,
        circular: bool = False,
    ) -> "HardConstraints":
        """
        Default constraints refined by a pseudo dot-bracket string.

        Symbols: ``.`` no constraint, ``x`` unpaired, ``|`` paired with
        anything, ``<`` paired downstream, ``>`` paired upstream and matching
        ``( )`` an enforced pair.

        Raises
        ------
        ValueError
            On a length mismatch, unknown symbols or unbalanced brackets.
        """
        if len(constraint) != len(seq):
            raise ValueError("Constraint string must have the same length as the sequence.")

        hc = cls.from_sequence(seq, min_loop_size=min_loop_size, circular=circular)
        stack = []
        for pos, symbol in enumerate(constraint, start=1):
            if symbol == ".":
                continue
            if symbol == "x":
                hc.force_unpaired(pos)
            elif symbol == "|":
                hc.prohibit_unpaired(pos)
            elif symbol == "<":
                hc.matrix[1:pos, pos] = 0
                hc.matrix[pos, 1:pos] = 0
                hc.prohibit_unpaired(pos)
            elif symbol == ">":
                hc.matrix[pos, pos + 1:] = 0
                hc.matrix[pos + 1:, pos] = 0
                hc.prohibit_unpaired(pos)
            elif symbol == "(":
                stack.append(pos)
            elif symbol == ")":
                if not stack:
                    raise ValueError(f"Unbalanced ')' at position {pos}.")
                hc.enforce_pair(stack.pop(), pos)
            else:
                raise ValueError(f"Unknown constraint symbol '{symbol}' at position {pos}.")

        if stack:
            raise ValueError(f"Unbalanced '(' at position {stack[-1]}.")

        return hc

    # --- Pair constraints ---
    def allows(self, i: int, j: int, context: LoopContext = LoopContext.ALL) -> bool:
        """True if `(i, j)` may pair in any of the given contexts."""
        return bool(self.matrix[i, j] & int(context))

    def prohibit_pair(self, i: int, j: int, contexts: LoopContext = LoopContext.ALL) -> None:
        """Remove `contexts` from the contexts in which `(i, j)` may pair."""
        self._check_pair(i, j)
        keep = int(LoopContext.ALL) & ~int(contexts)
        self.matrix[i, j] &= keep
        self.matrix[j, i] &= keep

    def enforce_pair(self, i: int, j: int, contexts: LoopContext = LoopContext.ALL) -> None:
        """
        Force `(i, j)` to be present in every structure.

        All other partners of `i` and `j` and every pair crossing `(i, j)`
        are removed, and both ends lose the option of staying unpaired.
        """
        self._check_pair(i, j)
        n = self.seq_len
        for pos in (i, j):
            self.matrix[pos, :] = 0
            self.matrix[:, pos] = 0
        for k in range(i + 1, j):
            self.matrix[k, 1:i] = 0
            self.matrix[1:i, k] = 0
            self.matrix[k, j + 1:n + 1] = 0
            self.matrix[j + 1:n + 1, k] = 0
        self.matrix[i, j] = self.matrix[j, i] = int(contexts)
        self.prohibit_unpaired(i)
        self.prohibit_unpaired(j)

    def prohibit_all_pairs(self) -> None:
        """Disallow every base pair; only the open chain remains."""
        self.matrix[:, :] = 0

    # --- Unpaired constraints ---
    def force_unpaired(self, i: int) -> None:
        """Position `i` may not pair with anything."""
        self._check_position(i)
        self.matrix[i, :] = 0
        self.matrix[:, i] = 0

    def prohibit_unpaired(self, i: int, contexts: LoopContext = LoopContext.ALL) -> None:
        """Position `i` may not stay unpaired in the given loop contexts."""
        self._check_position(i)
        for row, context in enumerate(UNPAIRED_CONTEXTS):
            if context & contexts:
                self.unpaired_mask[row, i] = False
        self.refresh_unpaired_runs()

    def refresh_unpaired_runs(self) -> None:
        """Recompute `up_ext`, `up_hp`, `up_int`, `up_ml` from `unpaired_mask`."""
        runs: Dict[LoopContext, np.ndarray] = {}
        n = self.seq_len
        for row, context in enumerate(UNPAIRED_CONTEXTS):
            up = np.zeros(n + 2, dtype=np.int64)
            mask = self.unpaired_mask[row]
            for i in range(n, 0, -1):
                up[i] = up[i + 1] + 1 if mask[i] else 0
            runs[context] = up

        self.up_ext = runs[LoopContext.EXT_LOOP]
        self.up_hp = runs[LoopContext.HP_LOOP]
        self.up_int = runs[LoopContext.INT_LOOP]
        self.up_ml = runs[LoopContext.MB_LOOP]

    # --- Validation ---
    def _check_position(self, i: int) -> None:
        if not 1 <= i <= self.seq_len:
            raise ValueError(f"Position {i} outside 1..{self.seq_len}.")

    def _check_pair(self, i: int, j: int) -> None:
        self._check_position(i)
        self._check_position(j)
        if i >= j:
            raise ValueError(f"Pair ({i}, {j}) must satisfy i < j.")
