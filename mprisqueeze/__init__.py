#!/usr/bin/env python3
''' mprisqueeze: control squeezelite via MPRIS '''

__version__ = '0.1.9'
