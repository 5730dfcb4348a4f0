"""HTTP interface: schemas, dependencies and routers."""
