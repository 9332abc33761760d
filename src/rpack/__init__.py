"""Packing and serving of contrastive retrieval token datasets."""
