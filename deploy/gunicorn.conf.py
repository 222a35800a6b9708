"""Gunicorn 生产配置

用法:
  GITCACHE_CONFIG=configs/default.yml \
  gunicorn --config deploy/gunicorn.conf.py "gitcache.web.app:create_app()"

多个 worker 进程共享同一缓存目录，同一仓库的操作由文件锁串行化。
"""

import multiprocessing
import os

# ---------- 网络 ----------
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:9091")

# ---------- 并发 ----------
workers = int(os.getenv("GUNICORN_WORKERS", min(multiprocessing.cpu_count() + 1, 8)))
threads = int(os.getenv("GUNICORN_THREADS", "4"))
worker_class = "gthread"
# 首次拉取大仓库可能很慢
timeout = int(os.getenv("GUNICORN_TIMEOUT", "900"))

# ---------- 日志 ----------
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ---------- 进程管理 ----------
graceful_timeout = 30
keepalive = 5
max_requests = 1000
max_requests_jitter = 50
