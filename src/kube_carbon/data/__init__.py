"""Packaged default data for :mod:`kube_carbon`."""
