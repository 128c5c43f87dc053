"""Built-in CLI sub-command groups for fetchcache.

* :mod:`~fetchcache.commands.config` -- view and modify the user configuration.
"""
