"""Tests for argocd-bootstrap."""
