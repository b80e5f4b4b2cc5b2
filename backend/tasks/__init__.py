"""Background tasks for application maintenance."""
from backend.tasks.settlement_maintenance import run_settlement_maintenance, schedule_periodic_maintenance

__all__ = ['run_settlement_maintenance', 'schedule_periodic_maintenance']
