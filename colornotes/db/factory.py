from colornotes.db.gateway import PersistenceGateway, StoredRoutineGateway
from colornotes.db.local import LocalRoutineGateway


def gateway_from_config(config) -> PersistenceGateway:
    """Build (not open) the gateway described by an app config mapping."""
    backend = (config.get("PERSISTENCE_BACKEND") or "local").lower()
    common = dict(
        url=config["DATABASE_URL"],
        engine_options=config.get("DATABASE_ENGINE_OPTIONS"),
        domain_rule_codes=config.get("DOMAIN_RULE_ERROR_CODES", ()),
    )
    if backend == "routines":
        return StoredRoutineGateway(**common)
    if backend == "local":
        return LocalRoutineGateway(note_quota=config.get("NOTE_QUOTA_PER_ACCOUNT", 0), **common)
    raise ValueError(f"Unknown PERSISTENCE_BACKEND {backend!r} (expected 'routines' or 'local')")
