def normalize_directory(full_path: str, username: str, is_root: bool) -> str:
    """Short display form of an absolute remote path.

    Only ever pass the full path reported by the remote host; feeding a
    previously shortened form back in is not supported.
    """
    path = (full_path or "").strip()
    if not path:
        return "~"
    if is_root or not username:
        return path

    home = f"/home/{username}"
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~" + path[len(home):]
    return path
