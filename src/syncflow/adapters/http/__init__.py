"""HTTP adapters."""

from syncflow.adapters.http.http_blob_storage import HttpBlobStorage

__all__ = ["HttpBlobStorage"]
