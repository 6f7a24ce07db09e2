import asyncio

from app.database import now_ms
from app.models.zone import Zone
from app.services.rule_engine import RuleEngine
from app.services.scheduler import sweep_automated_zones
from app.services.stores import ZoneStore


def test_sweep_uses_configured_max_age(db):
    zones = ZoneStore(db)
    two_hours_ago = now_ms() - 2 * 60 * 60 * 1000
    zones.create_zone(Zone(id="auto-stale", type="flood", shape="circle", center=[1, 2], radius=50,
                           automated_from="r1", created_at=two_hours_ago))
    zones.create_zone(Zone(id="auto-fresh", type="flood", shape="circle", center=[1, 2], radius=50,
                           automated_from="r1"))

    asyncio.run(sweep_automated_zones(RuleEngine()))

    db.expire_all()
    assert [z.id for z in zones.get_all_zones()] == ["auto-fresh"]
