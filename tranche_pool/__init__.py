"""Tranched credit pool — waterfall distribution and epoch redemption settlement."""
