"""Prometheus metrics for the progression service"""
