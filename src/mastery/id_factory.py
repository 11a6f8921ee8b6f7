"""ID 生成ユーティリティ。

復習アイテムの ID は prefix "rv:" に UUID を連結した形式で、概念テキストを含めない。
"""

from __future__ import annotations

import uuid


def generate_review_item_id() -> str:
    """復習アイテムの新規 ID を生成する。"""

    return f"rv:{uuid.uuid4().hex}"
