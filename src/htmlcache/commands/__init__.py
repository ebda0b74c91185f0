"""Built-in CLI sub-commands for htmlcache."""
