"""
Seed the journal catalog with a few sample periódicos.

Usage: python backend/scripts/seed_journals.py  (needs SUPABASE_URL + SUPABASE_SERVICE_ROLE_KEY)
"""

import sys
import uuid

import httpx
from dotenv import load_dotenv
from postgrest.exceptions import APIError

load_dotenv()

from tracker.core.exceptions import RepositoryError  # noqa: E402
from tracker.lib.api_client import supabase_admin  # noqa: E402

SAMPLE_JOURNALS = [
    {
        "name": "Journal of Computer Science",
        "issn": "1234-5678",
        "area": "Ciência da Computação",
        "qualis": "A1",
        "description": "Periódico internacional de alto impacto em ciência da computação",
    },
    {
        "name": "Management Review",
        "issn": "8765-4321",
        "area": "Administração",
        "qualis": "A2",
        "description": "Revista de gestão e administração empresarial",
    },
    {
        "name": "Education Research Quarterly",
        "issn": "5555-1111",
        "area": "Educação",
        "qualis": "B1",
        "description": "Pesquisas em educação e pedagogia",
    },
]


def seed() -> int:
    rows = [{"id": str(uuid.uuid5(uuid.NAMESPACE_URL, j["issn"])), **j} for j in SAMPLE_JOURNALS]
    try:
        # id 由 ISSN 派生，重复执行只会 upsert 同一批记录
        supabase_admin.table("journals").upsert(rows).execute()
    except RuntimeError as e:
        # 缺少 SUPABASE_URL / key
        print(f"❌ {e}")
        return 1
    except (APIError, httpx.HTTPError) as e:
        print(f"❌ Error seeding journals: {e}")
        raise RepositoryError("seed journals failed") from e
    print(f"✅ {len(rows)} journals seeded")
    return 0


if __name__ == "__main__":
    sys.exit(seed())
