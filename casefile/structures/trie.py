"""
Prefix Index (Trie) for the Casefile Retrieval Engine.

Words are traversed in lowercase but stored with their original casing at
the terminal node, so "Autopsy" is found by "AUTOPSY" and autocompleted
as "Autopsy".

Complexity:
    insert / exists / has_prefix — O(len(word))
    autocomplete                 — O(len(prefix) + nodes visited)

Children are visited in sorted key order, so autocomplete output is
reproducible for a given word set regardless of insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass
class TrieNode:
    children: dict[str, "TrieNode"] = field(default_factory=dict)
    is_terminal: bool = False
    word: Optional[str] = None  # Original casing, set only on terminal nodes


class PrefixIndex:
    """Case-insensitive trie supporting exact, prefix and autocomplete queries."""

    def __init__(self, words: Optional[list[str]] = None):
        self._root = TrieNode()
        self._size = 0
        for word in words or []:
            self.insert(word)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def insert(self, word: str) -> None:
        """Insert a word. Empty strings and repeats are ignored."""
        if not word:
            return

        node = self._root
        for char in word.lower():
            child = node.children.get(char)
            if child is None:
                child = TrieNode()
                node.children[char] = child
            node = child

        if not node.is_terminal:
            node.is_terminal = True
            node.word = word
            self._size += 1

    def delete(self, word: str) -> bool:
        """
        Remove a word and prune nodes that no longer lead anywhere.

        Returns False if the word was not stored.
        """
        if not word:
            return False

        # Record the path so cleanup can walk back toward the root.
        path: list[tuple[TrieNode, str]] = []
        node = self._root
        for char in word.lower():
            child = node.children.get(char)
            if child is None:
                return False
            path.append((node, char))
            node = child

        if not node.is_terminal:
            return False

        node.is_terminal = False
        node.word = None
        self._size -= 1

        # Post-order cleanup: deepest node first.
        for parent, char in reversed(path):
            child = parent.children[char]
            if child.children or child.is_terminal:
                break
            del parent.children[char]

        return True

    def clear(self) -> None:
        self._root = TrieNode()
        self._size = 0

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def exists(self, word: str) -> bool:
        """Case-insensitive exact match."""
        if not word:
            return False
        node = self._find_node(word.lower())
        return node is not None and node.is_terminal

    def has_prefix(self, prefix: str) -> bool:
        """True if any stored word starts with prefix. Empty prefix matches."""
        if not prefix:
            return True
        return self._find_node(prefix.lower()) is not None

    def autocomplete(self, prefix: str, limit: int = 10) -> list[str]:
        """
        Words starting with prefix, in original casing.

        The prefix itself comes first when it is a stored word; the rest
        follow in depth-first, sorted-child order. At most `limit` words.
        """
        if not prefix or limit <= 0:
            return []

        start = self._find_node(prefix.lower())
        if start is None:
            return []

        results: list[str] = []
        if start.is_terminal and start.word is not None:
            results.append(start.word)

        for word in self._iter_words(start):
            if len(results) >= limit:
                break
            results.append(word)

        return results[:limit]

    def all_words(self) -> list[str]:
        """Every stored word, in sorted traversal order."""
        words = []
        if self._root.is_terminal and self._root.word is not None:
            words.append(self._root.word)
        words.extend(self._iter_words(self._root))
        return words

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self.exists(word)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _find_node(self, lowered: str) -> Optional[TrieNode]:
        node = self._root
        for char in lowered:
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def _iter_words(self, node: TrieNode) -> Iterator[str]:
        """Yield descendant words of node (node itself excluded)."""
        for char in sorted(node.children):
            child = node.children[char]
            if child.is_terminal and child.word is not None:
                yield child.word
            yield from self._iter_words(child)
