# © 2024–2025 Harnisch LLC. All Rights Reserved.
# Licensed exclusively for use by St. Edward Church & School (Nashville, TN).
# Unauthorized use, distribution, or modification is prohibited.

import os

# One worker: the single-flight guard and scheduler live in process memory
workers = 1
worker_class = 'gthread'
threads = 4
timeout = 120
keepalive = 2

bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"

# Logging
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
accesslog = '-'
errorlog = '-'

preload_app = False

# Process naming
proc_name = 'studio-booking-sync'

max_requests = 0
max_requests_jitter = 0


def post_worker_init(worker):
    from app import ensure_components_initialized
    ensure_components_initialized()
