"""Deployment CLI for the AKS security lab."""
