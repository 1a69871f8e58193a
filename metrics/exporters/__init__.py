"""Exposition formats for registry metrics"""
