# src/lease_projection/solvers/__init__.py
from .circular import CircularSolver, CircularSolverInput, CircularSolverResult

__all__ = ['CircularSolver', 'CircularSolverInput', 'CircularSolverResult']
