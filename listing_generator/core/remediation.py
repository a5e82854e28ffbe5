# core/remediation.py
# 保存/分类 PHP 脚本出错时给用户看的修复指南

from __future__ import annotations

from typing import Optional

from listing_generator.core.errors import CategoryFetchError, ListingGeneratorError, SaveError

SAVE_SCRIPT_GUIDE = """\
The save script (save-product.php) crashed before it could answer.

1. Open save-product.php on your server and check DB_HOST, DB_USER, DB_PASS and DB_NAME.
2. Make sure the upload folder (public/uploads/all/) exists and is writable by PHP.
3. Images travel inside the JSON body: raise post_max_size and memory_limit in php.ini
   (16M or more) if products with two images fail.
4. Send CORS headers and answer OPTIONS with 200:
     Access-Control-Allow-Origin: *
     Access-Control-Allow-Methods: POST, OPTIONS
     Access-Control-Allow-Headers: Content-Type, Authorization
5. Always reply with JSON: {"ok": true, "id": <new id>} on success,
   {"ok": false, "error": "<reason>"} on failure.
6. Check the PHP error log for the exact exception.
"""

CATEGORIES_SCRIPT_GUIDE = """\
The categories script (get-categories.php) returned HTTP 500.

This usually means wrong database credentials.
1. Open get-categories.php on your server and check DB_HOST, DB_USER, DB_PASS and DB_NAME.
2. Send the header Access-Control-Allow-Origin: * and Content-Type: application/json.
3. Reply with {"ok": true, "data": [{"id": 1, "parentId": 0, "level": 0, "name": "..."}]},
   ordered so children follow their parent, or {"ok": false, "error": "<reason>"}.
"""


def guide_for(error: ListingGeneratorError) -> Optional[str]:
    """Return the guide matching ``error`` when it asks for remediation."""
    if not getattr(error, "show_remediation", False):
        return None
    if isinstance(error, CategoryFetchError):
        return CATEGORIES_SCRIPT_GUIDE
    if isinstance(error, SaveError):
        return SAVE_SCRIPT_GUIDE
    return None
