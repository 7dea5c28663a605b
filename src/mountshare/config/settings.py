import os

class Config:
    fstab_path = os.getenv("MOUNTSHARE_FSTAB_PATH", "/etc/fstab")
    smb_conf_path = os.getenv("MOUNTSHARE_SMB_CONF_PATH", "/etc/samba/smb.conf")
    mount_root = os.getenv("MOUNTSHARE_MOUNT_ROOT", "/mnt")

    # Owner/group ids applied to filesystems without POSIX permissions
    owner_uid = int(os.getenv("MOUNTSHARE_OWNER_UID", "1000"))
    owner_gid = int(os.getenv("MOUNTSHARE_OWNER_GID", "1000"))
    base_options = os.getenv("MOUNTSHARE_BASE_OPTIONS", "defaults")

    # Searched in order when `mountshare apply` gets no --config
    config_search_paths = [
        "mountshare.yaml",
        os.path.expanduser("~/.config/mountshare/config.yaml"),
        "/etc/mountshare/config.yaml",
    ]

config = Config()
