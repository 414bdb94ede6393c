"""Per-tenant AI API key queries."""

from datetime import datetime, timezone
from typing import Optional
import databases

from pagebuilder.core.credentials import decrypt_secret, encrypt_secret


async def get_key_info(db: databases.Database, tenant_id: str) -> Optional[dict]:
    """Key metadata for display; never includes the key itself."""
    query = """
        SELECT provider, usage_count, tokens_used, last_used_at, created_at
        FROM ai_api_keys WHERE tenant_id = :tenant_id
    """
    row = await db.fetch_one(query, {"tenant_id": tenant_id})
    if not row:
        return None

    return {
        "provider": row["provider"],
        "usageCount": row["usage_count"],
        "tokensUsed": row["tokens_used"],
        "lastUsedAt": row["last_used_at"],
        "createdAt": row["created_at"],
    }


async def get_api_key(db: databases.Database, tenant_id: str) -> Optional[str]:
    """Decrypted key for the tenant, if one is stored and readable."""
    query = "SELECT encrypted_key FROM ai_api_keys WHERE tenant_id = :tenant_id"
    row = await db.fetch_one(query, {"tenant_id": tenant_id})
    if not row:
        return None
    return decrypt_secret(row["encrypted_key"])


async def upsert_api_key(
    db: databases.Database, tenant_id: str, api_key: str, provider: str = "openai"
) -> None:
    now = datetime.now(timezone.utc).isoformat()
    query = """
        INSERT INTO ai_api_keys (tenant_id, encrypted_key, provider, created_at, updated_at)
        VALUES (:tenant_id, :encrypted_key, :provider, :now, :now)
        ON CONFLICT (tenant_id) DO UPDATE SET
            encrypted_key = excluded.encrypted_key,
            provider = excluded.provider,
            updated_at = excluded.updated_at
    """
    await db.execute(
        query,
        {
            "tenant_id": tenant_id,
            "encrypted_key": encrypt_secret(api_key),
            "provider": provider,
            "now": now,
        },
    )


async def delete_api_key(db: databases.Database, tenant_id: str) -> None:
    await db.execute(
        "DELETE FROM ai_api_keys WHERE tenant_id = :tenant_id", {"tenant_id": tenant_id}
    )


async def record_usage(db: databases.Database, tenant_id: str, tokens: int = 0) -> None:
    query = """
        UPDATE ai_api_keys
        SET usage_count = usage_count + 1,
            tokens_used = tokens_used + :tokens,
            last_used_at = :now
        WHERE tenant_id = :tenant_id
    """
    await db.execute(
        query,
        {
            "tenant_id": tenant_id,
            "tokens": tokens,
            "now": datetime.now(timezone.utc).isoformat(),
        },
    )
