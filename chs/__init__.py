"""Caddy Handler Sync (chs).

Discovers labelled Docker containers on one or more hosts and keeps a set of
Caddy handler files in sync with them:
 - a watcher on every Docker host reports its labelled containers
 - a server persists the reported services in SQLite
 - the server renders one handler file per host IP for the gateway to import
"""
