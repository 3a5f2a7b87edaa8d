"""Server-side atomic procedures (Lua) for the Redis store.

Each script performs its whole read-compute-write sequence inside Redis,
so concurrent writers cannot interleave between counting a key's
versions and evicting them. Eviction rules match
sortkey_cache.domain.retention.

Layout: values at "<prefix>.<entry>", index at "<prefix>.keys", entry is
key .. sep .. sortKey. Every entry of a key lies in
["key..sep", "(key..chr(sep+1)").
"""

from sortkey_cache.infrastructure.cache.store_protocol import (
    ATOMIC_DELETE,
    ATOMIC_PRUNE,
    ATOMIC_PUT,
)

# ZREM in chunks: unpack() is bounded by the Lua C stack.
_EVICT = """
local function evict(index, prefix, entries)
  for i = 1, #entries, 1000 do
    local chunk = {}
    for j = i, math.min(i + 999, #entries) do
      chunk[#chunk + 1] = entries[j]
      redis.call("DEL", prefix .. "." .. entries[j])
    end
    redis.call("ZREM", index, unpack(chunk))
  end
  return #entries
end
"""

ATOMIC_PUT_LUA = _EVICT + """
local key = KEYS[1]
local sortKey = KEYS[2]
local value = ARGV[1]
local minCount = tonumber(ARGV[2])
local maxCount = tonumber(ARGV[3])
local prefix = ARGV[4]
local sep = ARGV[5]

local index = prefix .. ".keys"
local entry = key .. sep .. sortKey
local floor = "[" .. key .. sep

redis.call("SET", prefix .. "." .. entry, value)
redis.call("ZADD", index, 0, entry)

-- versions of this key up to and including the one just written
local count = redis.call("ZLEXCOUNT", index, floor, "[" .. entry)
if count <= maxCount then
  return 0
end

-- newest first; skip the minCount to keep, evict the rest
local stale = redis.call("ZREVRANGEBYLEX", index, "[" .. entry, floor, "LIMIT", minCount, -1)
return evict(index, prefix, stale)
"""

ATOMIC_DELETE_LUA = _EVICT + """
local key = KEYS[1]
local sortKey = KEYS[2]
local prefix = ARGV[1]
local sep = ARGV[2]

local index = prefix .. ".keys"
local ceiling = "(" .. key .. string.char(string.byte(sep) + 1)

local doomed = redis.call("ZRANGEBYLEX", index, "[" .. key .. sep .. sortKey, ceiling)
return evict(index, prefix, doomed)
"""

ATOMIC_PRUNE_LUA = _EVICT + """
local entriesStored = tonumber(KEYS[1])
local prefix = ARGV[1]
local sep = ARGV[2]

local index = prefix .. ".keys"
local all = redis.call("ZRANGEBYLEX", index, "-", "+")
local before = #all

local function keyOf(entry)
  local at = string.find(entry, sep, 1, true)
  if not at then
    return redis.error_reply("Index entry is not a composite cache key: " .. entry)
  end
  return string.sub(entry, 1, at - 1)
end

-- entries of one key are contiguous and ascending: keep the last entriesStored
local stale = {}
local i = 1
while i <= before do
  local key = keyOf(all[i])
  if type(key) == "table" then
    return key
  end
  local j = i
  while j < before and keyOf(all[j + 1]) == key do
    j = j + 1
  end
  for n = i, j - entriesStored do
    stale[#stale + 1] = all[n]
  end
  i = j + 1
end

local removed = evict(index, prefix, stale)
return {before, before - removed}
"""

LUA_SCRIPTS: dict[str, str] = {
    ATOMIC_PUT: ATOMIC_PUT_LUA,
    ATOMIC_DELETE: ATOMIC_DELETE_LUA,
    ATOMIC_PRUNE: ATOMIC_PRUNE_LUA,
}
