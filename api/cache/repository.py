"""
Read-only aggregate queries served through the cached-data endpoint.
"""

from __future__ import annotations

from core import db

_SORT_ORDER = {
    "newest": "created_at DESC",
    "price_asc": "price ASC",
    "price_desc": "price DESC",
    "size_desc": "size_sqft DESC NULLS LAST",
}


async def property_counts() -> dict:
    area_rows = await db.fetch_all(
        """
        SELECT area, count(*) AS total
        FROM properties
        WHERE status = 'available'
        GROUP BY area
        """
    )
    developer_rows = await db.fetch_all(
        """
        SELECT developer, count(*) AS total
        FROM properties
        WHERE status = 'available'
          AND developer IS NOT NULL
        GROUP BY developer
        """
    )
    return {
        "area_counts": {str(r["area"]): int(r["total"]) for r in area_rows},
        "developer_counts": {str(r["developer"]): int(r["total"]) for r in developer_rows},
    }


async def area_benchmarks() -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, area_name, avg_price_sqft, avg_yield, data_as_of, data_source,
               is_verified, source_url
        FROM area_benchmarks
        ORDER BY area_name
        """
    )


async def status_counts(listing_type: str) -> dict:
    row = await db.fetch_one(
        """
        SELECT count(*) AS all_count,
               count(*) FILTER (WHERE completion_status = 'ready') AS ready_count,
               count(*) FILTER (WHERE completion_status IS DISTINCT FROM 'ready') AS off_plan_count
        FROM properties
        WHERE status = 'available'
          AND listing_type = $1
        """,
        listing_type,
    )
    row = row or {}
    return {
        "all": int(row.get("all_count") or 0),
        "ready": int(row.get("ready_count") or 0),
        "off_plan": int(row.get("off_plan_count") or 0),
    }


async def listing_counts() -> dict:
    row = await db.fetch_one(
        """
        SELECT count(*) FILTER (WHERE listing_type = 'sale') AS buy_count,
               count(*) FILTER (WHERE listing_type = 'rent') AS rent_count
        FROM properties
        WHERE status = 'available'
        """
    )
    row = row or {}
    return {"buy": int(row.get("buy_count") or 0), "rent": int(row.get("rent_count") or 0)}


async def active_agents() -> list[dict]:
    return await db.fetch_all(
        """
        SELECT a.id, a.full_name, a.avatar_url, a.bio, a.years_experience,
               a.areas_covered, a.specializations, a.languages, a.is_verified,
               a.brokerage_id, a.subscription_tier,
               (SELECT count(*) FROM properties p WHERE p.agent_id = a.id AND p.status = 'available')
                 AS total_listings
        FROM agents a
        WHERE a.is_active = true
        ORDER BY a.is_verified DESC, total_listings DESC
        """
    )


async def market_stats() -> list[dict]:
    return await db.fetch_all(
        """
        SELECT area_name, avg_price_sqft, avg_property_price, avg_yield,
               price_trend_percent, total_transactions_ytd, updated_at
        FROM area_market_data
        WHERE is_active = true
        ORDER BY updated_at DESC
        """
    )


async def properties_with_counts(
    *,
    listing_type: str | None,
    status: str,
    area: str | None,
    property_type: str | None,
    min_price: float | None,
    max_price: float | None,
    bedrooms: int | None,
    developer: str | None,
    limit: int,
    offset: int,
    sort_by: str,
) -> dict:
    order_by = _SORT_ORDER.get(sort_by, _SORT_ORDER["newest"])
    filters = """
        status = $1
        AND ($2::text IS NULL OR listing_type = $2)
        AND ($3::text IS NULL OR area = $3)
        AND ($4::text IS NULL OR property_type = $4)
        AND ($5::numeric IS NULL OR price >= $5)
        AND ($6::numeric IS NULL OR price <= $6)
        AND ($7::int IS NULL OR bedrooms = $7)
        AND ($8::text IS NULL OR developer = $8)
    """
    args = (status, listing_type, area, property_type, min_price, max_price, bedrooms, developer)

    properties = await db.fetch_all(
        f"""
        SELECT id, title, area, developer, property_type, listing_type, price,
               bedrooms, size_sqft, completion_status, cover_image_url, created_at
        FROM properties
        WHERE {filters}
        ORDER BY {order_by}
        LIMIT $9 OFFSET $10
        """,
        *args,
        limit,
        offset,
    )
    totals = await db.fetch_one(
        f"""
        SELECT count(*) AS total_count,
               count(*) FILTER (WHERE completion_status = 'ready') AS ready_count,
               count(*) FILTER (WHERE completion_status IS DISTINCT FROM 'ready') AS offplan_count,
               count(*) FILTER (WHERE listing_type = 'sale') AS buy_count,
               count(*) FILTER (WHERE listing_type = 'rent') AS rent_count
        FROM properties
        WHERE {filters}
        """,
        *args,
    )
    counts = await property_counts()
    totals = totals or {}
    return {
        "properties": properties,
        "total_count": int(totals.get("total_count") or 0),
        "area_counts": counts["area_counts"],
        "developer_counts": counts["developer_counts"],
        "ready_count": int(totals.get("ready_count") or 0),
        "offplan_count": int(totals.get("offplan_count") or 0),
        "buy_count": int(totals.get("buy_count") or 0),
        "rent_count": int(totals.get("rent_count") or 0),
    }
