from ncw_ops.core.applists.list_file import parse_app_list, read_app_list

__all__ = ["parse_app_list", "read_app_list"]
