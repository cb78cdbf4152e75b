import pytest

from mipssim.lsq import (
    LOAD_STORE_BUFFER_SIZE,
    SCHEDULING_QUEUE_SIZE,
    ExecutableLoad,
    InstructionDetails,
    LoadStoreBuffer,
    SchedulingQueue,
)


def _store(lsb, addr_tag, value, rob_id, byte=False, halfword=False):
    return lsb.put(True, addr_tag, -1, value, byte, halfword, True, rob_id)


def _load(lsb, addr_tag, rob_id, byte=False, halfword=False):
    return lsb.put(False, addr_tag, -1, 0, byte, halfword, False, rob_id)


def test_put_returns_consecutive_slots():
    lsb = LoadStoreBuffer()
    assert [_load(lsb, 100 + i, i) for i in range(3)] == [0, 1, 2]
    assert len(lsb) == 3


def test_full_buffer_rejects_put():
    lsb = LoadStoreBuffer()
    for i in range(LOAD_STORE_BUFFER_SIZE):
        _load(lsb, 100 + i, i)
    assert not lsb.has_space()
    with pytest.raises(IndexError):
        _load(lsb, 999, 99)


def test_update_resolves_address_and_value_tags():
    lsb = LoadStoreBuffer()
    idx = lsb.put(False, 7, 8, 0, False, False, True, 3)
    lsb.update(7, 0x40)
    lsb.update(8, 1234)
    entry = lsb[idx]
    assert entry.valid_address and entry.address == 0x40
    assert entry.valid_value and entry.value == 1234


def test_ready_store_is_reported():
    lsb = LoadStoreBuffer()
    _store(lsb, 5, 77, rob_id=4)
    assert lsb.executed_stores() == []
    lsb.update(5, 0x100)
    lsb.update_execution_bits()
    stores = lsb.executed_stores()
    assert [(s.rob_id, s.value, s.address) for s in stores] == [(4, 77, 0x100)]


def test_load_waits_for_unknown_store_address():
    lsb = LoadStoreBuffer()
    _store(lsb, 5, 77, rob_id=0)
    _load(lsb, 6, rob_id=1)
    lsb.update(6, 0x200)
    lsb.update_execution_bits()
    assert lsb.executable_load() is None
    lsb.update(5, 0x100)
    lsb.update_execution_bits()
    load = lsb.executable_load()
    assert load == ExecutableLoad(0x200, False, False, 1, 1, False, 0)


def test_load_blocked_by_overlapping_store():
    lsb = LoadStoreBuffer()
    _store(lsb, 5, 77, rob_id=0)
    _load(lsb, 6, rob_id=1)
    lsb.update(5, 0x100)
    lsb.update(6, 0x102)
    lsb.update_execution_bits()
    assert lsb.executable_load() is None


def test_resolve_store_value_forwards_word_store():
    lsb = LoadStoreBuffer()
    _store(lsb, 5, 0xCAFE, rob_id=0)
    idx = _load(lsb, 6, rob_id=1)
    lsb.update(5, 0x100)
    lsb.update(6, 0x100)
    assert lsb.resolve_store_value(idx, 0x11223344) == 0xCAFE
    assert lsb[idx].complete


def test_resolve_store_value_merges_byte_store():
    lsb = LoadStoreBuffer()
    _store(lsb, 5, 0xAB, rob_id=0, byte=True)
    idx = _load(lsb, 6, rob_id=1)
    lsb.update(5, 0x100)
    lsb.update(6, 0x100)
    assert lsb.resolve_store_value(idx, 0x11223344) == 0x112233AB


def test_resolve_store_value_without_stores_keeps_memory_word():
    lsb = LoadStoreBuffer()
    idx = _load(lsb, 6, rob_id=1)
    lsb.update(6, 0x100)
    assert lsb.resolve_store_value(idx, 0x11223344) == 0x11223344


def test_pending_load_is_skipped_until_resolved():
    lsb = LoadStoreBuffer()
    idx = _load(lsb, 6, rob_id=2)
    lsb.update(6, 0x300)
    lsb.update_execution_bits()
    assert lsb.executable_load().index == idx
    lsb.mark_pending(idx)
    assert lsb.executable_load() is None
    lsb.resolve_pending_state(0x300, 555)
    load = lsb.executable_load()
    assert load.valid_value and load.value == 555


def test_mark_pending_ignores_out_of_range():
    lsb = LoadStoreBuffer()
    idx = _load(lsb, 6, rob_id=2)
    lsb.mark_pending(-1)
    lsb.mark_pending(LOAD_STORE_BUFFER_SIZE)
    assert not lsb[idx].pending


def test_commit_and_advance_head_frees_slots():
    lsb = LoadStoreBuffer()
    _load(lsb, 6, rob_id=10)
    _load(lsb, 7, rob_id=11)
    lsb.commit_by_rob_id(11)
    lsb.advance_head_if_complete()
    assert len(lsb) == 2
    lsb.commit_by_rob_id(10)
    lsb.advance_head_if_complete()
    assert len(lsb) == 0


def test_flush_empties_buffer():
    lsb = LoadStoreBuffer()
    _load(lsb, 6, rob_id=1)
    lsb.flush()
    assert len(lsb) == 0
    assert lsb.executable_load() is None
    assert _load(lsb, 6, rob_id=1) == 0


def test_scheduling_queue_allocates_first_free_slot():
    sq = SchedulingQueue()
    inst = InstructionDetails(alu_op=2, funct=0x20)
    assert sq.allocate_entry(-1, 1, True, -1, 2, True, inst, 0) == 0
    assert sq.allocate_entry(-1, 3, True, -1, 4, True, inst, 1) == 1
    assert len(sq) == 2


def test_scheduling_queue_waits_for_operands():
    sq = SchedulingQueue()
    inst = InstructionDetails(alu_op=3, opcode=0x8)
    sq.allocate_entry(12, 0, False, -1, 9, True, inst, 5)
    assert sq.deallocate_entry() is None
    sq.update(12, 40)
    issued = sq.deallocate_entry()
    assert (issued.value1, issued.value2, issued.rob_id, issued.index) == (40, 9, 5, 0)
    assert issued.inst == inst
    assert len(sq) == 0


def test_scheduling_queue_update_ignores_free_slots():
    sq = SchedulingQueue()
    sq.update(-1, 99)
    assert sq.deallocate_entry() is None


def test_scheduling_queue_full():
    sq = SchedulingQueue()
    inst = InstructionDetails()
    for i in range(SCHEDULING_QUEUE_SIZE):
        sq.allocate_entry(1, 0, False, 1, 0, False, inst, i)
    assert not sq.has_unallocated_entry()
    with pytest.raises(IndexError):
        sq.allocate_entry(1, 0, False, 1, 0, False, inst, 0)
    sq.flush()
    assert sq.has_unallocated_entry()
    assert len(sq) == 0