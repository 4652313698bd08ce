"""
Scheduler Routes Blueprint

Handles background job scheduler:
- /api/scheduler/status: Get scheduler status
- /api/scheduler/run/<job_id>: Manually trigger a job
"""

import logging
from flask import Blueprint, jsonify

from auth import protect_blueprint
from services.scheduler import get_scheduler

logger = logging.getLogger(__name__)

# Create blueprint
scheduler_bp = protect_blueprint(Blueprint('scheduler_bp', __name__))


# ============================================================================
# SCHEDULER API
# ============================================================================

@scheduler_bp.route('/status', methods=['GET'])
def get_scheduler_status():
    """Get the status of background jobs."""
    scheduler = get_scheduler()
    return jsonify({
        'running': scheduler.running,
        'jobs': scheduler.get_job_status()
    })


@scheduler_bp.route('/run/<job_id>', methods=['POST'])
def run_scheduler_job(job_id):
    """Manually trigger a scheduled job."""
    scheduler = get_scheduler()
    if not scheduler.run_job_now(job_id):
        return jsonify({'error': 'Job not found'}), 404

    status = scheduler.get_job_status()[job_id]
    logger.info(f"Job {job_id} run manually")
    return jsonify({'message': f'Job {job_id} executed', 'job': status})
