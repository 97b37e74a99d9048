# aad/ops/transcendental.py
from .arithmetic import _unary


def sqrt(x): return _unary(x, "sqrt")
def cbrt(x): return _unary(x, "cbrt")

def exp(x): return _unary(x, "exp")
def expm1(x): return _unary(x, "expm1")


def ln(x):
    """Natural logarithm; NaN for negative x, -inf at 0."""
    return _unary(x, "ln")


def log2(x): return _unary(x, "log2")
def log10(x): return _unary(x, "log10")
def log1p(x): return _unary(x, "log1p")

def sin(x): return _unary(x, "sin")
def cos(x): return _unary(x, "cos")
def tan(x): return _unary(x, "tan")
def asin(x): return _unary(x, "asin")
def acos(x): return _unary(x, "acos")
def atan(x): return _unary(x, "atan")

def sinh(x): return _unary(x, "sinh")
def cosh(x): return _unary(x, "cosh")
def tanh(x): return _unary(x, "tanh")
def asinh(x): return _unary(x, "asinh")
def acosh(x): return _unary(x, "acosh")
def atanh(x): return _unary(x, "atanh")
