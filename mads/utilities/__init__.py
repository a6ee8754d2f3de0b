"""various utilities of the `mads` package, not related to optimization
in particular"""
