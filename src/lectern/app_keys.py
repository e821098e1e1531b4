"""Application keys for type-safe app configuration access."""

from pathlib import Path

from aiohttp import web

from lectern.config import Config
from lectern.loader import IndexLoader

config_key = web.AppKey("config", Config)
index_loader_key = web.AppKey("index_loader", IndexLoader)
site_dir_key = web.AppKey("site_dir", Path)
