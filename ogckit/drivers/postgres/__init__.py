"""PostGIS implementations of the storage drivers."""