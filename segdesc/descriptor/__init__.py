"""x86 GDT/LDT segment descriptor model."""

from .codec import DescriptorError as DescriptorError
from .codec import SegmentDescriptor as SegmentDescriptor
from .codec import decode as decode
from .codec import encode as encode
from .types import *
