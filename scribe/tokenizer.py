"""
Word tokenizer for the full-text index.

Content is split on whitespace, then on punctuation. Underscore, apostrophe
and colon are not punctuation here, so ``don't``, ``snake_case`` and
``key:value`` each stay a single token.
"""

import re

# ASCII punctuation minus ' : _
PUNCTUATION = "!\"#$%&()*+,-./;<=>?@[\\]^`{|}~"

_PUNCT_RE = re.compile("[" + re.escape(PUNCTUATION) + "]")


def tokenize(content: str) -> list[str]:
    """
    Normalize free text into index tokens.

    Tokens are lowercased and stripped of double quotes; empty fragments
    are dropped. Duplicates are kept, in content order.
    """
    tokens = []
    for run in content.split():
        for fragment in _PUNCT_RE.split(run):
            word = fragment.lower().replace('"', "")
            if word:
                tokens.append(word)
    return tokens


def index_terms(content: str) -> set[str]:
    """Distinct tokens of a content string."""
    return set(tokenize(content))
