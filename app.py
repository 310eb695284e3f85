# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

#!/usr/bin/env python3
"""
Studio Booking Sync - HTTP trigger surface and operator endpoints
"""
import logging
import signal
import sys
from datetime import datetime

import pytz
from flask import Flask, jsonify, request

import config
from config import SyncConfig
from feed.reader import FeedClient
from storage.repository import BookingStore
from sync.engine import ReconciliationEngine
from sync.errors import FetchFailure, MalformedFeed
from sync.guard import SingleFlightGuard
from sync.history import SyncLog
from sync.scheduler import SyncScheduler
from sync.trigger import ALREADY_RUNNING, SyncTrigger
from utils.logger import setup_logging
from utils.timezone import get_local_time

setup_logging()
logger = logging.getLogger(__name__)

MAX_LOG_LIMIT = 200
PREVIEW_SAMPLE_SIZE = 20

# Initialize Flask
app = Flask(__name__)


# Security Headers Middleware
@app.after_request
def add_security_headers(response):
    """Add security headers to all responses"""
    response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    response.headers['Cache-Control'] = 'no-store'

    # Remove server information
    response.headers['Server'] = 'Studio Booking Sync'

    return response


# Global components - initialized on first request
store = None
sync_log = None
sync_engine = None
sync_trigger = None
scheduler = None

_components_initialized = False


def initialize_components(booking_store: BookingStore = None, client: FeedClient = None,
                          start_scheduler: bool = config.SCHEDULER_ENABLED):
    """Wire storage, engine, guard, trigger and scheduler together"""
    global store, sync_log, sync_engine, sync_trigger, scheduler, _components_initialized

    store = booking_store or BookingStore(config.DATABASE_URL)
    store.init_db()
    logger.info("✅ Booking store initialized")

    sync_log = SyncLog(store)
    sync_engine = ReconciliationEngine(store, client=client, sync_log=sync_log)
    guard = SingleFlightGuard(timeout=config.SYNC_GUARD_TIMEOUT_SECONDS)
    sync_trigger = SyncTrigger(sync_engine, guard, sync_log)
    scheduler = SyncScheduler(sync_trigger, interval_minutes=config.SYNC_INTERVAL_MIN)
    logger.info("✅ Sync engine initialized")

    if start_scheduler:
        scheduler.start()
        logger.info(f"✅ Scheduler started (every {config.SYNC_INTERVAL_MIN} minutes)")

    _components_initialized = True


def ensure_components_initialized():
    """Initialize components on first request to avoid startup delays"""
    if not _components_initialized:
        initialize_components()
        logger.info("✅ Components initialized on first request")


def _int_arg(name: str, default: int, maximum: int = None) -> int:
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(1, value)
    return min(value, maximum) if maximum else value


@app.route('/health')
def health_check():
    """Lightweight health check"""
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.now(pytz.UTC).isoformat(),
        "service": "studio-booking-sync",
        "version": "1.0.0"
    }), 200


@app.route('/status')
def get_status():
    """Get current system status"""
    try:
        ensure_components_initialized()
        sync_config = SyncConfig.from_env()

        return jsonify({
            "sync_in_progress": sync_trigger.is_running(sync_config),
            "scheduler_running": scheduler.is_running() if scheduler else False,
            "scheduler_interval_minutes": config.SYNC_INTERVAL_MIN,
            "feed_configured": bool(sync_config.feed_url),
            "last_result": sync_trigger.last_result,
            "timezone": config.OPERATING_TIMEZONE,
            "current_time": get_local_time().isoformat()
        })

    except Exception as e:
        logger.error(f"Status check failed: {e}")
        return jsonify({"error": str(e), "sync_in_progress": False}), 500


@app.route('/sync', methods=['POST'])
def trigger_sync():
    """Trigger sync in background, return immediately"""
    ensure_components_initialized()

    sync_config = SyncConfig.from_env()
    if not sync_config.feed_url:
        return jsonify({"error": "CALENDAR_FEED_URL is not configured"}), 400

    result = sync_trigger.start_sync(sync_config)
    if result["status"] == ALREADY_RUNNING:
        return jsonify({
            **result,
            "message": "Sync is already in progress"
        }), 409

    return jsonify({
        **result,
        "message": "Sync started in background",
        "check_progress": "/sync/logs"
    }), 202  # 202 Accepted


@app.route('/sync/logs')
def sync_logs():
    """Most recent sync log entries, newest first"""
    try:
        ensure_components_initialized()
        limit = _int_arg('limit', 50, MAX_LOG_LIMIT)
        return jsonify({"logs": sync_trigger.recent_logs(limit)})
    except Exception as e:
        logger.error(f"Sync logs error: {e}")
        return jsonify({"error": str(e)}), 500


@app.route('/sync/statistics')
def sync_statistics():
    """Sync log statistics for the last N hours"""
    try:
        ensure_components_initialized()
        hours = _int_arg('hours', 24)
        stats = sync_log.get_statistics(hours)
        stats['recent_failures'] = sync_log.get_recent_failures(limit=5)
        return jsonify(stats)
    except Exception as e:
        logger.error(f"Sync statistics error: {e}")
        return jsonify({"error": str(e)}), 500


@app.route('/sync/preview', methods=['POST'])
def preview_sync():
    """
    Report what the next run would import without writing anything.
    """
    ensure_components_initialized()

    sync_config = SyncConfig.from_env()
    if not sync_config.feed_url:
        return jsonify({"error": "CALENDAR_FEED_URL is not configured"}), 400

    try:
        occurrences, skipped = sync_engine.plan(sync_config)
    except FetchFailure as e:
        logger.error(f"Preview fetch failed: {e}")
        return jsonify({"error": str(e)}), 502
    except MalformedFeed as e:
        logger.error(f"Preview parse failed: {e}")
        return jsonify({"error": str(e)}), 422
    except Exception as e:
        logger.error(f"Preview sync failed: {e}")
        return jsonify({"error": str(e)}), 500

    return jsonify({
        "success": True,
        "preview": {
            "occurrence_count": len(occurrences),
            "skipped": dict(skipped),
            "occurrences": [
                {
                    "external_id": o.external_id,
                    "studio_id": o.studio_id,
                    "title": o.title,
                    "booking_date": o.booking_date,
                    "start_time": o.start_time,
                    "end_time": o.end_time,
                    "recurring": o.from_recurring
                }
                for o in occurrences[:PREVIEW_SAMPLE_SIZE]
            ]
        }
    })


class GracefulShutdownHandler:
    def __init__(self):
        self.shutdown_requested = False
        signal.signal(signal.SIGTERM, self.handle_sigterm)
        signal.signal(signal.SIGINT, self.handle_sigterm)

    def handle_sigterm(self, signum, frame):
        logger.warning(f"Received signal {signum}, initiating graceful shutdown...")
        self.shutdown_requested = True

        if scheduler:
            scheduler.stop()

        # Wait for the current import to complete (max 30 seconds)
        current = sync_trigger.last_thread if sync_trigger else None
        if current is not None and current.is_alive():
            current.join(timeout=30)

        logger.info("Graceful shutdown completed")
        sys.exit(0)


if __name__ == '__main__':
    shutdown_handler = GracefulShutdownHandler()
    ensure_components_initialized()
    logger.info(f"Starting studio booking sync service on port {config.PORT}")
    app.run(host='0.0.0.0', port=config.PORT)
