"""Infrastructure Layer:

Concrete adapters behind the domain interfaces: disk image cache, HTTP
client, cache-backed fetcher, widget state file, work scheduler, console
display, configuration and logging.
"""
