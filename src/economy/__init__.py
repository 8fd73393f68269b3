"""Toy multi-good, multi-labor economy; the production caller of the solver.

Each tick derives goods availability and labor values from the current
workforce, then reallocates laborers with one damped Gauss-Newton step so
supply/demand ratios approach a slight overproduction target.

Economic correctness is not a goal; the tick reproduces a fixed recipe
arithmetic so the solver has a realistic, changing input each step.
"""
