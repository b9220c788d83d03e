# CCS811 eCO2/tVOC gas sensor driver.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

from .codec import Measurement, RawData, fixed_point_decode, fixed_point_encode
from .device import CCS811
from .errors import *
from .registers import ErrorId, Mode, Status, Timings, TIMINGS_DEFAULT
from .transport import Bus, BusSMBus, Pin
