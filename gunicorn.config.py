import os

# gunicorn -c gunicorn.config.py
wsgi_app = "wsgi:app"

# gevent workers; payout calls block on PayPal I/O
worker_class = "gevent"
workers = int(os.getenv("WEB_CONCURRENCY", "4"))
worker_connections = 1000
timeout = 120
bind = "0.0.0.0:{}".format(os.getenv("PORT", "10000"))

loglevel = "info"
accesslog = "-"
errorlog = "-"
