import sys
import os

# Put the project root on sys.path so tests import the flat top-level packages ('correlate', 'scoring', 'report', ...).
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
