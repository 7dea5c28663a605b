# Dictionary of managed services.
# Key: Internal name used by mountshare
# Value: List of possible systemd unit names (first match wins)

MANAGED_SERVICES = {
    "samba": ["smbd.service", "smb.service", "samba.service"],
}
