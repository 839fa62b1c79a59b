from ncw_ops.core.host.occ import AppListing, HostAdmin, OccClient

__all__ = ["AppListing", "HostAdmin", "OccClient"]
