"""releasebisect - interactive bisection over dated release builds."""

__version__ = "0.1.0"
