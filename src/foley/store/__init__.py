"""Asset library backends for the semantic cache."""

from foley.store.http import HttpAssetStore, decode_data_url, encode_data_url
from foley.store.sqlite import SqliteAssetStore, cosine_similarity

__all__ = [
    "HttpAssetStore",
    "SqliteAssetStore",
    "cosine_similarity",
    "decode_data_url",
    "encode_data_url",
]
