from __future__ import annotations

import re

from core_service.database.mysql_base import escape_like


def _like_to_regex(pattern: str) -> re.Pattern:
    # LIKE semantics with '!' as the escape character
    out, i = [], 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "!" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        out.append(".*" if ch == "%" else "." if ch == "_" else re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$", re.DOTALL)


def test_path_prefix_matches_only_real_descendants():
    pattern = _like_to_regex(f"{escape_like('HQ.JK_T')}.%")

    assert pattern.match("HQ.JK_T.BDG")
    assert not pattern.match("HQ.JKXT.BDG")
    assert not pattern.match("HQ.JK_T")


def test_escape_character_itself_is_escaped():
    assert escape_like("50%_off!") == "50!%!_off!!"
