"""Built-in CLI sub-commands for whatcache.

* :mod:`~whatcache.commands.fetch` -- run one API operation through the cache.
* :mod:`~whatcache.commands.cache` -- inspect and prune the response store.
* :mod:`~whatcache.commands.config` -- view and modify global settings.
"""
