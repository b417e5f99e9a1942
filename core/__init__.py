"""
Repertoire core: notation codec, repertoire graph, drill sessions and game ingest.
"""
