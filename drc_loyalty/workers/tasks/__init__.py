from drc_loyalty.workers.tasks.campaign_maintenance import run_campaign_status_rollover
from drc_loyalty.workers.tasks.points_expiration import run_points_expiration_sweep

__all__ = [
    "run_campaign_status_rollover",
    "run_points_expiration_sweep",
]
