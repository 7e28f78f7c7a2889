# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

from blockgreens.transport.two_lead import TransportDirection, TwoLeadTransport

__all__ = ["TransportDirection", "TwoLeadTransport"]
