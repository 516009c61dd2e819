"""Credential handling — authentication token cache, session store and token manager."""
