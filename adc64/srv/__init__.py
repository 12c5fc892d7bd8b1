"""Persistent register store and raw data file writer."""