"""
Database initialization script
Creates the tables and, when SEED_DEMO_DATA is set, a demo sensor, rule and camera
"""
import logging

from app.database import SessionLocal, engine, settings, now_ms
from app.models import Base
from app.models.camera import Camera
from app.models.sensor import Sensor
from app.models.sensor_rule import SensorRule

logger = logging.getLogger(__name__)

def init_database(seed: bool = None):
    """Create tables and optionally seed demo records into an empty database"""

    Base.metadata.create_all(bind=engine)

    if seed is None:
        seed = settings.seed_demo_data
    if not seed:
        return

    db = SessionLocal()
    try:
        if db.query(Sensor).count() > 0:
            logger.info("Database already initialized")
            return

        now = now_ms()
        river_sensor = Sensor(
            id="sensor-demo-river",
            name="River gauge (demo)",
            location=[106.6297, 10.8231],
            type="water_level",
            threshold=5.0,
            action_type="flood",
            created_at=now,
        )
        db.add(river_sensor)

        rule = SensorRule(
            id="rule-demo-river",
            name="River above flood stage",
            type="1-sensor",
            sensors=[river_sensor.id],
            action_type="flood",
            action_shape="circle",
            action_radius=500,
            enabled=True,
            rule_metadata={"condition": "active"},
            created_at=now,
        )
        db.add(rule)

        camera = Camera(
            id="camera-demo-1",
            name="Bridge camera (demo)",
            location=[106.6300, 10.8240],
            status="offline",
        )
        db.add(camera)

        db.commit()
        logger.info("Database initialized successfully!")
        logger.info(f"Created sensor: {river_sensor.name}, rule: {rule.name}, camera: {camera.name}")

    except Exception as e:
        db.rollback()
        logger.error(f"Error initializing database: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database(seed=True)
