"""Normalization pipeline services: field lookup, cell normalizers, classifier,
projector, partitioner, publisher and their orchestration."""
