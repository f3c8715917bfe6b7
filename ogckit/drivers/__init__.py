"""Storage driver interfaces for OGC API resources."""