"""Humane Decision Engine - Services"""
