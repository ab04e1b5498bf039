"""Registry operations, dispatch, and the lookup call boundary."""
