"""webfleet: stand up a small AWS web fleet and configure it with Ansible."""

__version__ = "0.1.0"
