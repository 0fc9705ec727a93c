# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Word tokenization and file-backed vocabularies.

Currently implemented:
- tokenize: lowercase alphabetic word tokens
- Vocabulary: (id, token) table kept sorted by token text
- ThresholdVocabulary: Vocabulary with a staging area for rare tokens

A vocabulary file holds one `id<SEP>token` line per entry. Growing the
vocabulary re-sorts it by token text and renumbers every entry, so ids are
only stable until the next time an unseen token is added.

Nothing here is thread safe: every extending lookup is an unguarded
read-modify-write of the file.
"""

import logging
import pathlib
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Tuple, Union

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\t\t\t"
DEFAULT_ENTRY: Tuple[int, str] = (0, ".")
UNKNOWN_ID = 0
PROMOTION_THRESHOLD = 3

# A letter may be followed by one apostrophe, which is dropped from the token.
_WORD_RE = re.compile(r"(?:[A-Za-zäöüß]'?)+")

PathLike = Union[str, pathlib.Path]


def tokenize(text: str) -> List[str]:
    """
    Split text into lowercase word tokens.

    Tokens are runs of letters; an apostrophe directly after a letter is
    absorbed into the token ("don't" -> "dont"). Tokens of a single
    character are dropped.
    """
    tokens = (m.group(0).replace("'", "").lower() for m in _WORD_RE.finditer(text))
    return [tok for tok in tokens if len(tok) > 1]


def _read_table(path: pathlib.Path, n_fields: int) -> List[List[str]]:
    """Read `SEP`-separated rows; raises OSError or ValueError on bad input."""
    rows = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\r\n")
            if not line.strip():
                continue
            fields = line.split(FIELD_SEPARATOR)
            if len(fields) != n_fields:
                raise ValueError(f"expected {n_fields} fields, got {line!r}")
            rows.append(fields)
    return rows


def _write_table(path: pathlib.Path, rows: Iterable[Iterable]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(FIELD_SEPARATOR.join(str(v) for v in row) for row in rows)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


class BaseVocabulary(ABC):
    """Abstract base class for vocabularies."""

    @abstractmethod
    def encode(self, text: str, extend: bool = True) -> List[int]:
        """Convert text to token ids."""
        pass

    @abstractmethod
    def decode(self, ids: Iterable[int]) -> List[str]:
        """Convert token ids back to tokens."""
        pass

    @property
    @abstractmethod
    def vocab_size(self) -> int:
        """Return vocabulary size."""
        pass


class Vocabulary(BaseVocabulary):
    """
    Sorted (id, token) table persisted at `path`.

    The file is re-read on every call, so several Vocabulary objects
    pointing at the same file see each other's writes.
    """

    def __init__(self, path: PathLike) -> None:
        """
        Args:
            path: Location of the vocabulary file. It does not need to exist.
        """
        self.path = pathlib.Path(path)

    @classmethod
    def for_language(cls, directory: PathLike, vocabulary_id: str) -> "Vocabulary":
        """Vocabulary stored as `<directory>/<vocabulary_id>.csv`."""
        return cls(pathlib.Path(directory) / f"{vocabulary_id}.csv")

    def read(self) -> List[Tuple[int, str]]:
        """
        Load the entries from disk.

        A missing or malformed file yields the single default entry
        (0, "."); the error is logged, never raised.
        """
        try:
            rows = _read_table(self.path, 2)
            entries = [(int(i), word) for i, word in rows]
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot read vocabulary {self.path} ({e}); using default entry")
            return [DEFAULT_ENTRY]
        return entries or [DEFAULT_ENTRY]

    def write(self, entries: Iterable[Tuple[int, str]]) -> None:
        _write_table(self.path, entries)

    @staticmethod
    def _renumber(words: Iterable[str]) -> List[Tuple[int, str]]:
        return [(i, word) for i, word in enumerate(sorted(words))]

    def lookup(self, tokens: List[str], extend: bool = True) -> List[int]:
        """
        Map tokens to ids.

        Args:
            tokens: Already tokenized words.
            extend: If True, unseen tokens are added, every id is reassigned
                    by sorted token text and the file is rewritten before
                    returning. If False the vocabulary is frozen: unseen
                    tokens map to 0 and nothing is written.

        Returns:
            One id per token.
        """
        entries = self.read()
        stoi: Dict[str, int] = {word: i for i, word in entries}

        unseen = [tok for tok in dict.fromkeys(tokens) if tok not in stoi]
        if unseen and extend:
            entries = self._renumber(list(stoi) + unseen)
            stoi = {word: i for i, word in entries}
            self.write(entries)
            logger.debug(
                f"Added {len(unseen)} token(s) to {self.path}, size is now {len(entries)}"
            )
        elif unseen:
            logger.debug(f"{len(unseen)} unknown token(s) mapped to {UNKNOWN_ID}")

        return [stoi.get(tok, UNKNOWN_ID) for tok in tokens]

    def encode(self, text: str, extend: bool = True) -> List[int]:
        """Tokenize `text` and look up its ids."""
        return self.lookup(tokenize(text), extend=extend)

    def decode(self, ids: Iterable[int]) -> List[str]:
        """
        Map ids back to tokens.

        Raises:
            KeyError: For an id that is not in the vocabulary.
        """
        itos = dict(self.read())
        return [itos[int(i)] for i in ids]

    @property
    def vocab_size(self) -> int:
        return len(self.read())

    def __len__(self) -> int:
        return self.vocab_size

    def __contains__(self, token: str) -> bool:
        return any(word == token for _, word in self.read())


class ThresholdVocabulary(Vocabulary):
    """
    Vocabulary that only admits tokens seen often enough.

    Unseen tokens first go to a staging file (`<stem>.threshold.csv`,
    lines `token<SEP>count`). Once a token's count reaches `threshold` it
    is promoted into the stable vocabulary. Tokens still in staging look up
    as id 0.
    """

    def __init__(self, path: PathLike, threshold: int = PROMOTION_THRESHOLD) -> None:
        super().__init__(path)
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        self.threshold = threshold
        self.staging_path = self.path.with_name(f"{self.path.stem}.threshold.csv")

    def read_staging(self) -> Dict[str, int]:
        """Token counts below the threshold; a missing file means none."""
        try:
            rows = _read_table(self.staging_path, 2)
            return {word: int(count) for word, count in rows}
        except (OSError, ValueError) as e:
            logger.debug(f"No staging vocabulary at {self.staging_path} ({e})")
            return {}

    def lookup(self, tokens: List[str], extend: bool = True) -> List[int]:
        entries = self.read()
        stoi: Dict[str, int] = {word: i for i, word in entries}
        if not extend:
            return [stoi.get(tok, UNKNOWN_ID) for tok in tokens]

        staging = self.read_staging()
        promoted = []
        for tok in tokens:
            if tok in stoi or tok in promoted:
                continue
            staging[tok] = staging.get(tok, 0) + 1
            if staging[tok] >= self.threshold:
                del staging[tok]
                promoted.append(tok)

        if promoted:
            entries = self._renumber(list(stoi) + promoted)
            stoi = {word: i for i, word in entries}
            self.write(entries)
            logger.debug(f"Promoted {promoted} into {self.path}")
        _write_table(self.staging_path, sorted(staging.items()))

        return [stoi.get(tok, UNKNOWN_ID) for tok in tokens]
