from .mrc2014 import *
