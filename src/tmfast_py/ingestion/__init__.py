"""
Pipeline for ingesting a static GTFS schedule archive. The archive is
downloaded, extracted into a working directory and each of its tables is
parsed into a dataframely validated polars DataFrame.
"""
