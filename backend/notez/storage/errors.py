class StoreUnavailable(Exception):
    """The backing note or media store could not be reached or written."""
