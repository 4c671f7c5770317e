# flake8: noqa

from .certificate import *
from .exception import *
from .fee import *
from .hash import *
from .metadata import *
from .nativescript import *
from .network import *
from .plutus import *
from .purpose import *
from .serialization import *
from .strategy import *
from .transaction import *
from .txbuilder import *
from .utils import *
from .witness import *
