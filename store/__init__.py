"""
Store Package

Opening, version detection and migration of the on-disk recipe store.
Import from the submodules directly (store.manager, store.session, ...);
models depend on store.errors, so this package imports nothing eagerly.
"""
