from booking_ledger.models import Resource


class ResourceOwnershipIndex:
    """Read-only projections over the Resource.managers relation. Not cached."""

    async def managed_resource_ids(self, principal_id: int) -> set[int]:
        ids = await Resource.filter(managers__id=principal_id).values_list(
            "id", flat=True
        )
        return set(ids)

    async def managed_resource_names(self, principal_id: int) -> set[str]:
        names = await Resource.filter(managers__id=principal_id).values_list(
            "name", flat=True
        )
        # A blank name would match every title
        return {n.lower() for n in names if n and n.strip()}


ownership_index = ResourceOwnershipIndex()
