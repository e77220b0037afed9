"""Natural-language query pipeline over bid-package pairings.

A question is turned into a validated `Intent`, translated into a deterministic search spec, the
matching pairings are ranked without any model involvement, and the answer is written from those
records only.
"""
