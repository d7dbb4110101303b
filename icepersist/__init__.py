"""
Persistence backend that keeps key-value store objects on remote file systems.

Two kinds of objects end up on the remote file system. The first are the node's own
values, spilled to a per-node "ice" directory and read back when needed. The second are
files that already live there, like a dataset on HDFS or S3, which are imported by
registering each file as an object that is loaded lazily, chunk by chunk.

Remote file systems fail in ways local disks don't, so all I/O for loading and storing
objects runs through a retry loop that tells faults that heal by themselves apart from
those that won't. User-initiated operations like browsing a directory fail fast
instead and report the path and configuration that were involved.
"""
